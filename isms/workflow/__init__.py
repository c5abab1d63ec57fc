"""Risk & Compliance Workflow Engine.

Phase-completion guard, ALE derivation, SLE breakdown reconciliation with
the two-step risk edit protocol, boundary-control association workflow and
risk register aggregation. Deterministic; persistence goes through the
repositories handed in by the caller.
"""
