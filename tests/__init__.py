"""
Budgello Test Suite

- test_security.py: password hashing and access tokens
- test_auth.py: registration, login, token checks, admin bootstrap
- test_users.py: administrator user management and cascading deletes
- test_categories.py: per-user categories and detach-on-delete
- test_transactions.py: the transaction ledger
- test_budgets.py: budgets, frequency uniqueness and sharing
- test_summary.py: period spend, remaining amount and category totals

Run all tests:
    pytest tests/
"""
