"""Framework services shared across infractl (logging)."""
