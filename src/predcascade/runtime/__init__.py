"""In-process host runtime: instances, message routing, market factory."""
