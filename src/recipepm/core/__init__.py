"""Core engine: version model, state store, resolver, lockfile, lifecycle."""
