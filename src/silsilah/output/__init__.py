"""Output layer: Rich rendering and JSON serialization of CommandResult."""
