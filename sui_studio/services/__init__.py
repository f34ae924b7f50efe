"""Deploy pipeline services."""
