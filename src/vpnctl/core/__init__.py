"""Shared domain primitives for vpnctl."""
