# SPDX-License-Identifier: Apache-2.0
"""ResearchHub: study, application and session lifecycle service."""

__version__ = "0.1.0"
