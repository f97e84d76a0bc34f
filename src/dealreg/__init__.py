"""Partner deal registration service.

Treats a header-indexed tabular backing store as a lightweight database and
runs the deal-registration workflow on top of it: duplicate detection,
customer de-duplication, the submit/approve/reject lifecycle, audit logging
and admin-role resolution.
"""
