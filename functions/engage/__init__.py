"""
Classroom engagement backend.

A FastAPI service over a document store (classes, the points ledger and
every classroom tool) and a real-time key-value store for live quiz rooms.
"""
