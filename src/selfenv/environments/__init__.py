"""The private environment and its shims."""
