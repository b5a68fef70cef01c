"""
Core modules for the Fitsee dashboard.

This package contains the pure computations behind the dashboard views:
date-range resolution, revenue, daily bucketing, ranking, pagination,
and the report builders that combine them.
"""
