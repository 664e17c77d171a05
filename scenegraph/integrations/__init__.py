"""Host collaborators: in-memory REST document host and the Figma REST client."""
