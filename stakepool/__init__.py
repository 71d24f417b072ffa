# MIT License
# Copyright (c) 2025 Hashborn

"""
stakepool - staking-and-reward ledger.

Participants lock a balance for a chosen duration and accrue block-driven
rewards from an owner-funded reward pool.
"""

__version__ = "0.1.0"
