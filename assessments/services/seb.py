# assessments/services/seb.py
"""
Safe Exam Browser (SEB) support.

Builds the per-session ``.seb`` configuration a candidate opens to launch the
locked-down browser, and derives the Browser Exam Key and Config Key a
genuine client is expected to present for that session.
"""
from __future__ import annotations

import gzip
import hashlib
import json
import plistlib
import re
from typing import Optional

from django.conf import settings

REQUEST_HASH_HEADER = "X-SafeExamBrowser-RequestHash"
CONFIG_KEY_HEADER = "X-SafeExamBrowser-ConfigKeyHash"

USER_AGENT_PATTERNS = (
    re.compile(r"SEB[\s/][\d.]+", re.IGNORECASE),
    re.compile(r"SafeExamBrowser", re.IGNORECASE),
    re.compile(r"Safe.*Exam.*Browser", re.IGNORECASE),
)

PROHIBITED_PROCESSES = (
    ("obs", "Block OBS Studio"),
    ("TeamViewer", "Block TeamViewer"),
    ("Discord", "Block Discord"),
    ("chrome", "Block Chrome"),
    ("firefox", "Block Firefox"),
)


def _base_url() -> str:
    return settings.SEB_EXAM_BASE_URL.rstrip('/')


def exam_url(course_id: int, session_id: Optional[int] = None) -> str:
    if session_id is None:
        return f"{_base_url()}/exam/{course_id}?seb=true"
    return f"{_base_url()}/exam/{course_id}?session={session_id}&seb=true"


def expected_browser_exam_key(session_id: int, course_id: int, user_id: int) -> str:
    data = f"EXAM_{session_id}_{course_id}_{user_id}"
    return hashlib.sha256(data.encode()).hexdigest()[:32]


def expected_config_key(course_id: int, url: str) -> str:
    config = {
        "startURL": url,
        "sendBrowserExamKey": True,
        "allowQuit": True,
        "courseId": str(course_id),
    }
    # Keys sorted, no whitespace, then hashed again together with the start URL
    serialized = re.sub(r"\s", "", json.dumps(config, sort_keys=True, separators=(",", ":")))
    config_hash = hashlib.sha256(serialized.encode()).hexdigest()
    return hashlib.sha256((url + config_hash).encode()).hexdigest()[:32]


def is_seb_user_agent(user_agent: str) -> bool:
    return any(pattern.search(user_agent or "") for pattern in USER_AGENT_PATTERNS)


def build_config(course_id: int, session_id: Optional[int] = None) -> dict:
    """The SEB settings dictionary for one exam session."""
    base = _base_url()
    start_url = exam_url(course_id, session_id)
    config = {
        "startURL": start_url,
        "quitURL": f"{base}/courses/{course_id}",
        "sendBrowserExamKey": True,
        "allowQuit": True,
        "quitExamText": "Enter administrator password to quit exam:",

        "ignoreExitKeys": True,
        "enableF1": False,
        "enableF3": False,
        "enableF12": False,
        "enableCtrlEsc": False,
        "enableAltEsc": False,
        "enableAltTab": False,
        "enableAltF4": False,
        "enableRightMouse": False,
        "enablePrintScreen": False,
        "enableEsc": False,
        "enableCtrlAltDel": False,

        "allowBrowsingBackForward": False,
        "allowReload": False,
        "showReloadButton": False,
        "allowAddressBar": False,
        "allowNavigationBar": False,
        "showNavigationButtons": False,
        "newBrowserWindowByLinkPolicy": 0,
        "newBrowserWindowByScriptPolicy": 0,
        "blockPopUpWindows": True,

        "allowCopy": False,
        "allowCut": False,
        "allowPaste": False,
        "allowSpellCheck": False,
        "allowDictation": False,

        "enableLogging": True,
        "logLevel": 2,
        "detectVirtualMachine": True,
        "allowVirtualMachine": False,

        "URLFilterEnable": True,
        "URLFilterEnableContentFilter": True,
        "urlFilterRules": [
            {"action": 1, "active": True, "expression": start_url},
            {"action": 1, "active": True, "expression": f"{base}/api/exams/*"},
            {"action": 1, "active": True, "expression": f"{base}/api/auth/*"},
            {"action": 0, "active": True, "expression": "*"},
        ],
        "prohibitedProcesses": [
            {
                "active": True,
                "currentUser": True,
                "description": description,
                "executable": executable,
                "windowHandling": 1,
            }
            for executable, description in PROHIBITED_PROCESSES
        ],
        "originatorVersion": "SEB_Web_3.10.0",
    }
    if settings.SEB_QUIT_PASSWORD:
        config["hashedQuitPassword"] = hashlib.sha256(settings.SEB_QUIT_PASSWORD.encode()).hexdigest()
    return config


def config_file(config: dict) -> bytes:
    """Encode ``config`` as a ``.seb`` file: gzip("plnd" + gzip(plist XML))."""
    xml = plistlib.dumps(config, fmt=plistlib.FMT_XML)
    return gzip.compress(b"plnd" + gzip.compress(xml))


def read_config_file(data: bytes) -> dict:
    inner = gzip.decompress(data)
    if not inner.startswith(b"plnd"):
        raise ValueError("Not an unencrypted SEB configuration")
    return plistlib.loads(gzip.decompress(inner[4:]))
