from custody_ledger.auth.identity import Caller

__all__ = ['Caller']
