"""Infrastructure - Adaptadores de persistencia."""
