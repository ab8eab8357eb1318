# SPDX-License-Identifier: MIT
"""casfs - content-addressable file storage behind a small HTTP file server."""

__version__ = "0.1.0"
