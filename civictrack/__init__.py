# SPDX-License-Identifier: Apache-2.0

"""
civictrack - civic complaint lifecycle, permission and SLA engine.
"""

__version__ = "1.0.0"
