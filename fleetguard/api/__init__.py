"""HTTP API for FleetGuard."""
