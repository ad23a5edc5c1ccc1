"""Pricing and settlement core: impact model, transactional store, settlement."""
