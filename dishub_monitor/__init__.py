"""Dishub vehicle-tax monitoring backend."""
