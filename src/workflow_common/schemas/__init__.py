"""JSON Schema documents bundled with the workflow catalog."""
