# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus metrics for the pool node.
"""
