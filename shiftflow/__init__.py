"""
shiftflow - Swap Lifecycle and Recurring Automation Core

Tracks manual cryptocurrency swaps through the external quote/settlement
lifecycle and drives recurring automation on top of it: price alerts,
dollar-cost-averaging orders and limit orders that execute swaps once a
market condition is met.
"""

__version__ = "0.1.0"
__author__ = "shiftflow Team"
