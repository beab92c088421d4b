"""Order lifecycle engine with push-notification reconciliation.

Why no locks or multi-row transactions?
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Each transition touches exactly one ``orders`` row, so it is expressed as a
single ``UPDATE ... WHERE order_id = ? AND status = ? [AND creator/worker = ?]``
and the affected-row count is the only success signal. Two workers that both
saw ``new`` race inside SQLite's write lock; one gets ``rowcount == 1``, the
other ``0`` and a ``ConflictError``.

The notification ledger is updated after that commit and is not atomic with
it. A crash in between leaves either stale ``available`` handles (retracted on
the next transition, or dropped by the housekeeping expiry sweep) or a missing
``claimed`` message; the order row itself is never left half-written.
"""
