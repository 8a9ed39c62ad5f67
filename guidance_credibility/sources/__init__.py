"""
Remote sources: SEC EDGAR and issuer investor-relations sites.
"""
