"""Service layer: mutation authority, audit trail and the command boundary."""
