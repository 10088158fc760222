"""DHBNN clinical assessment service."""
