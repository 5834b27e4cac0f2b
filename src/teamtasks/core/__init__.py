"""Pure task model, identifiers, and configuration."""
