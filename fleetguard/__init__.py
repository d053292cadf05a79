"""FleetGuard: authorization and tenant scoping for the fleet dashboard."""

__version__ = "0.1.0"
