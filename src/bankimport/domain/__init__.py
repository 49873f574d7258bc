"""Domain layer for bankimport."""

__all__ = [
    "BusinessService",
    "LedgerService",
    "BankImportService",
    "ImportAuditService",
    "ReconciliationAnalyzer",
    "ReconciliationService",
]

_SERVICES = {
    "BusinessService": "bankimport.domain.business",
    "LedgerService": "bankimport.domain.ledger",
    "BankImportService": "bankimport.domain.import_service",
    "ImportAuditService": "bankimport.domain.audit",
    "ReconciliationAnalyzer": "bankimport.domain.reconciliation",
    "ReconciliationService": "bankimport.domain.reconciliation",
}


# Services import the database layer, which imports domain.entities;
# resolve them lazily so that importing either package first works
def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
