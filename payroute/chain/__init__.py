"""Chain access: JSON-RPC reads, calldata encoding and balance scanning."""
