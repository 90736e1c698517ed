"""UI code generation from contracts."""
