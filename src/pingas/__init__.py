# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Draw bitmaps on an IPv6 ping canvas."""

__version__ = "0.1.0"
