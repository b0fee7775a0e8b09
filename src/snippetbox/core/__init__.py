"""Framework-independent pipeline primitives: chains, patterns, route table."""
