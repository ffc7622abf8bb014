"""Rich renderers for each region of the TUI layout."""
