"""
Service layer for the Dishub monitoring backend.

Services take an explicit SQLAlchemy session and optional ``now`` so the
same functions serve HTTP routes, scripts and tests.
"""
