"""Stage registry and prompt composer for the pitch pipeline."""
