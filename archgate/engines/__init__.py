"""
Governance engines: layers, stability, gate.
"""
