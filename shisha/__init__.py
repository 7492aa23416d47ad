"""
Shisha Program Backend
Beneficiary program tracking and supplement stock custody
"""

__version__ = "1.0.0"
