# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI front end.
"""

from s3replay.integrations.fastapi import (
    create_api_key_guard,
    get_s3replay_state,
    register_s3replay_routes,
    s3replay_lifespan,
)

__all__ = [
    "create_api_key_guard",
    "get_s3replay_state",
    "register_s3replay_routes",
    "s3replay_lifespan",
]
