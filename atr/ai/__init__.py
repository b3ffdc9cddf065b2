"""Context assembly, response interpretation, task reconciliation and summary compression."""
