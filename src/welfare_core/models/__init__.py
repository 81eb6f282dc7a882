"""Domain models for welfare programs, claims and quota usage."""
