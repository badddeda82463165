"""In-memory collaborators: repositories and the event bus."""
