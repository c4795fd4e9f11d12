"""Gates — индивидуальные гейты transfer pipeline.

- GATE 0: Listing / pre-listing transfer restriction
- GATE 1: Allowance / balance sufficiency
"""

from .gate_00_listing import Gate00Listing, Gate00Result
from .gate_01_funds import MAX_ALLOWANCE, Gate01Funds, Gate01Result

__all__ = [
    "Gate00Listing",
    "Gate00Result",
    "Gate01Funds",
    "Gate01Result",
    "MAX_ALLOWANCE",
]
