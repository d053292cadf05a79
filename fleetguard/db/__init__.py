"""Persistence layer for FleetGuard."""
