"""Thin wrappers over the network, filesystem and subprocesses."""
