"""
Pocket Vault storage service.

Accounts keyed by a 6-digit ID, diary entries and file records in a hosted
realtime database, binaries on an external file host, and share codes for
moving items between accounts.
"""
