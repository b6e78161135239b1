# SPDX-License-Identifier: Apache-2.0

"""
Route blueprints for the civictrack API.
"""
