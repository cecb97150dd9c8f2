#
# src/alertd/__init__.py
#
"""
alertd: supervises an ElastAlert engine and runs ad-hoc rule tests against it.
"""
