"""HTTP collaborator surfaces."""
