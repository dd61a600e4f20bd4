"""
Variance calculation, hierarchy roll-up, insights and trends.
"""
