"""
Column types for monetary and percentage fields.
"""

from sqlalchemy import DECIMAL

# Amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
MoneyType = DECIMAL(18, 8)

# Commission percentages (e.g. 12.5000, 0.5000)
RatePercentType = DECIMAL(10, 4)
