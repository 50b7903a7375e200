# trace_sink.py
from __future__ import annotations

import datetime as dt
import logging
import os
import random
from typing import Optional

logger = logging.getLogger("trace_sink")

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>
        body {{
            font-family: "Open Sans", sans-serif; font-size: 14px;
        }}
    </style>
</head>
<body>
{content}
</body>
</html>
"""


class TraceFileSink:
    """
    Writes large payloads to files under a web-served directory so messages can link
    to them instead of inlining them.
    """

    def __init__(self, directory: str, base_url: str) -> None:
        self.directory = directory
        self.base_url = base_url.rstrip("/")

    def create(self, content: str, filename: str = "trace", ext: str = "txt") -> Optional[str]:
        name = "%s_%s_%s.%s" % (dt.datetime.now().strftime("%Y%m%d_%H%M%S"), filename, random.randint(1000, 9999), ext)
        if ext == "html" and "<html" not in content.lower():
            content = HTML_TEMPLATE.format(title=name, content=content)

        path = os.path.join(self.directory, name)
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.error("Error creating trace file %s: %s", path, e)
            return None

        return f"{self.base_url}/{name}"
