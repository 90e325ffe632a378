"""
SessionPay core: data model, cryptography, canonical encoding, errors.
"""
