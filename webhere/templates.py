from functools import lru_cache
from importlib import resources

LIVE_JS_PATH = "/_webhere_live.js"
LIVE_WS_PATH = "/_webhere_live_ws"

LIVE_SCRIPT_TAG = f'\n<script src="{LIVE_JS_PATH}"></script>'

DIR_LIST_START = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>webhere</title>
<style>
  body { font-family: sans-serif; margin: 2rem; }
  a { display: block; padding: 0.1rem 0; }
</style>
</head>
<body>
"""

DIR_LIST_END = """
</body>
</html>
"""


@lru_cache(maxsize=None)
def live_js_content():
    return resources.files("webhere").joinpath("static/_webhere_live.js").read_text(encoding="utf-8")
