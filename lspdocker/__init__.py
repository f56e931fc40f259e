"""Language servers in docker containers, with host/container path translation."""
