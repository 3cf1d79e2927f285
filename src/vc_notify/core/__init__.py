"""Shared configuration and logging for vc_notify."""
