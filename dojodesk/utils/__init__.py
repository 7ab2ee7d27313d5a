"""Low-level helpers shared across DojoDesk."""
