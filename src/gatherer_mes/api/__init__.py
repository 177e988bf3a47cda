"""HTTP adapter and shared request/response schemas."""
