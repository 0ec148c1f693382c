"""Provider-agnostic streaming chat relay."""
