"""Back-office services: loan calculator, capital ledger, loan lifecycle,
payments, registries and the audit trail."""
