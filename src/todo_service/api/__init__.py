"""Service interfaces: JSON-RPC, HTTP and operation handlers."""
