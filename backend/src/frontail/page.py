"""
Bootstrap page served on ``GET /``.

The page carries the full file content at request time plus the cursor the
browser uses to open the stream right after that content.
"""
from __future__ import annotations

import html
import json
from string import Template

from frontail.cursor import Cursor


def _js_literal(value: str) -> str:
    # Keep "</script>" inside the data from closing the script element.
    return json.dumps(value).replace("</", "<\\/")


PAGE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="description" content="frontail: follow a file from the browser">
<link rel="icon" href="data:;base64,iVBORw0KGgo=">
<title>$title</title>
<style>
body { margin: 0; padding: 0; }
header {
  display: flex; position: fixed; top: 0; padding: 20px 0; width: 100vw;
  background-color: black; color: white; font-size: 20px;
  font-family: sans-serif; justify-content: space-between;
}
#fileData { margin-top: 80px; padding: 0; }
.log {
  padding: 0 10px; margin: 2px 0; white-space: pre-wrap; color: black;
  font-size: 1em; border: 0; cursor: default;
}
.selected { background-color: #ffb2b0; }
#status { padding: 0 20px; color: #ffb2b0; }
</style>
</head>
<body>
<header>
  <div style="padding: 0 20px;">File: $title</div>
  <div id="status"></div>
  <div style="padding: 0 20px;"><input id="filter" placeholder="filter" size="20"></div>
</header>
<div id="fileData"></div>
<script type="text/javascript">
var input = $data;
var host = $host;
var cursor = {modTime: "$mod_time", offset: "$offset"};
var data = document.getElementById("fileData");
var filterBox = document.getElementById("filter");
var statusBox = document.getElementById("status");

function fmt(text, filter) {
  var lines = text.split("\\n");
  var regex = filter ? new RegExp(filter, "i") : null;
  data.innerHTML = "";
  for (var i = 0; i < lines.length; i++) {
    if (regex && !regex.test(lines[i])) {
      continue;
    }
    var elem = document.createElement("div");
    elem.className = "log";
    elem.addEventListener("click", function () {
      this.className = this.className.indexOf("selected") === -1 ? "log selected" : "log";
    });
    elem.textContent = lines[i];
    data.appendChild(elem);
  }
  window.scrollTo(0, document.body.scrollHeight);
}

function connect() {
  var scheme = window.location.protocol === "https:" ? "wss://" : "ws://";
  var conn = new WebSocket(
    scheme + host + "/stream?modTime=" + cursor.modTime + "&offset=" + cursor.offset
  );
  conn.binaryType = "arraybuffer";
  conn.onopen = function () {
    statusBox.textContent = "";
  };
  conn.onclose = function () {
    statusBox.textContent = "Connection closed, reconnecting";
    setTimeout(connect, 2000);
  };
  conn.onmessage = function (evt) {
    if (typeof evt.data !== "string") {
      if (evt.data.byteLength === 0) {
        conn.send(new ArrayBuffer(0));
      } else {
        var checkpoint = JSON.parse(new TextDecoder().decode(evt.data));
        cursor = {modTime: String(checkpoint.modTime), offset: String(checkpoint.offset)};
      }
      return;
    }
    input += evt.data;
    fmt(input, filterBox.value);
  };
}

filterBox.addEventListener("keyup", function () { fmt(input, filterBox.value); });
fmt(input, "");
connect();
</script>
</body>
</html>
""")


def render_page(filename: str, content: str, cursor: Cursor, host: str) -> str:
    params = cursor.to_params()
    return PAGE_TEMPLATE.substitute(
        title=html.escape(filename),
        data=_js_literal(content),
        host=_js_literal(host),
        mod_time=params["modTime"],
        offset=params["offset"],
    )
