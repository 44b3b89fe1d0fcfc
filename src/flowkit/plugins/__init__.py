"""Provider plugins for flowkit."""
