"""Core services for FleetGuard."""
