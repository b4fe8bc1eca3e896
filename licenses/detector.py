"""
Blob license detector.

Bytes in, candidate licenses out. Matching is deliberately text-based:
SPDX tags, Debian machine-readable `License:` fields and fingerprints of
well-known license texts. Any object exposing `detect_file` and
`detect_blob` can stand in for it.
"""
from __future__ import annotations

import os
import re
from typing import List, Tuple

from models.package import License, dedupe_licenses

DETECTED_CONFIDENCE = 0.8
UNKNOWN_LICENSE_ID = "UNKNOWN"

SPDX_TAG_RE = re.compile(r"SPDX-License-Identifier:\s*([A-Za-z0-9.+\-() ]+?)\s*(?:\*/|-->|#|$)", re.MULTILINE)
DEBIAN_LICENSE_FIELD_RE = re.compile(r"^License:[ \t]*(\S[^\n]*?)[ \t]*$", re.MULTILINE)
EXPRESSION_OPERATORS_RE = re.compile(r"\s(?:OR|AND|WITH)\s")

# whitespace in the text is collapsed to single spaces before matching
FINGERPRINTS: List[Tuple[str, re.Pattern]] = [
    ("Apache-2.0", re.compile(r"Apache License,? Version 2\.0", re.IGNORECASE)),
    ("MIT", re.compile(r"Permission is hereby granted, free of charge, to any person obtaining a copy", re.IGNORECASE)),
    ("ISC", re.compile(r"Permission to use, copy, modify, and(?:/or)? distribute this software for any purpose with or without fee", re.IGNORECASE)),
    ("GPL-2.0", re.compile(r"GNU GENERAL PUBLIC LICENSE Version 2,", re.IGNORECASE)),
    ("GPL-3.0", re.compile(r"GNU GENERAL PUBLIC LICENSE Version 3,", re.IGNORECASE)),
    ("LGPL-2.0", re.compile(r"GNU LIBRARY GENERAL PUBLIC LICENSE Version 2,", re.IGNORECASE)),
    ("LGPL-2.1", re.compile(r"GNU LESSER GENERAL PUBLIC LICENSE Version 2\.1,", re.IGNORECASE)),
    ("LGPL-3.0", re.compile(r"GNU LESSER GENERAL PUBLIC LICENSE Version 3,", re.IGNORECASE)),
    ("MPL-2.0", re.compile(r"Mozilla Public License,? (?:v\. |Version )2\.0", re.IGNORECASE)),
    ("BSD-3-Clause", re.compile(r"Neither the name of .{1,200}? nor the names of (?:its|their) contributors may be used", re.IGNORECASE)),
    ("Zlib", re.compile(r"This software is provided 'as-is', without any express or implied warranty\. In no event will the authors be held liable", re.IGNORECASE)),
]

DEBIAN_SHORT_NAMES = {
    "apache-2.0": "Apache-2.0",
    "artistic": "Artistic-1.0",
    "bsd-2-clause": "BSD-2-Clause",
    "bsd-3-clause": "BSD-3-Clause",
    "expat": "MIT",
    "mit": "MIT",
    "gpl-2": "GPL-2.0-only",
    "gpl-2+": "GPL-2.0-or-later",
    "gpl-3": "GPL-3.0-only",
    "gpl-3+": "GPL-3.0-or-later",
    "lgpl-2": "LGPL-2.0-only",
    "lgpl-2+": "LGPL-2.0-or-later",
    "lgpl-2.1": "LGPL-2.1-only",
    "lgpl-2.1+": "LGPL-2.1-or-later",
    "lgpl-3": "LGPL-3.0-only",
    "lgpl-3+": "LGPL-3.0-or-later",
    "mpl-2.0": "MPL-2.0",
    "zlib": "Zlib",
    "isc": "ISC",
    "public-domain": "LicenseRef-public-domain",
}


class LicenseDetector:

    def detect_file(self, path: str) -> List[License]:
        """Read `path` and classify its contents. OSError propagates."""
        with open(path, "rb") as f:
            data = f.read()
        return self.detect_blob(path, data)

    def detect_blob(self, path: str, data: bytes) -> List[License]:
        text = data.decode("utf-8", errors="replace")
        found: List[License] = []

        for match in SPDX_TAG_RE.finditer(text):
            found.append(self._license(path, match.group(1).strip()))

        for match in DEBIAN_LICENSE_FIELD_RE.finditer(text):
            spdx_id = DEBIAN_SHORT_NAMES.get(match.group(1).strip().lower())
            if spdx_id:
                found.append(self._license(path, spdx_id))

        collapsed = " ".join(text.split())
        for spdx_id, pattern in FINGERPRINTS:
            if pattern.search(collapsed):
                found.append(self._license(path, spdx_id))

        if not found and os.path.basename(path) in ("LICENSE", "LICENCE"):
            return [License(file=path, id=UNKNOWN_LICENSE_ID)]

        return dedupe_licenses(found)

    @staticmethod
    def _license(path: str, value: str) -> License:
        if EXPRESSION_OPERATORS_RE.search(value):
            return License(file=path, expression=value, confidence=DETECTED_CONFIDENCE)
        return License(file=path, id=value, confidence=DETECTED_CONFIDENCE)
