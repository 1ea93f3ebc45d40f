"""HTTP transport and cookie state."""
