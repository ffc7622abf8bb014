"""Full-screen terminal UI for browsing, applying and building stashes."""
