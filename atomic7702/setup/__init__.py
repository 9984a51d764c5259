"""
Setup utilities: wallet generation, test token deployment and wallet funding.
"""
