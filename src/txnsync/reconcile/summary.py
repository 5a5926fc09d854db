from dataclasses import dataclass


@dataclass
class ReconciliationSummary:
    matched: int = 0
    unmatched: int = 0
    settle_failures: int = 0
    created: int = 0
    ignored: int = 0
    skipped: int = 0
    import_failures: int = 0
