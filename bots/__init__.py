"""Synthetic trading agents: trend signals, personality policies, scheduler."""
