from __future__ import annotations

import copy
import html
import posixpath
import re
from typing import Any, Mapping
from urllib.parse import urlencode, urlparse

from .base import ErrorList, FieldType
from .basic import strip_tags

LINK_TARGETS = ("_self", "_blank", "_parent", "_top")
LINK_TYPES = ("external", "internal", "email", "phone")
REL_VALUES = ("nofollow", "noopener", "noreferrer", "sponsored")
UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^(\+?\d[\d\s\-()]*\d|\d)$")
_ATTR_NAME_RE = re.compile(r"[^a-zA-Z0-9_-]")


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


class ImageField(FieldType):
    kind = "image"
    default = ""
    class_name = "form-image-input"

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or value == "":
            return []
        if not isinstance(value, str) or not (is_absolute_url(value) or value.startswith("/")):
            return ["Invalid image URL or path"]
        allowed = rules.get("allowed_extensions")
        if allowed:
            extension = posixpath.splitext(urlparse(value).path)[1].lstrip(".").lower()
            if extension not in allowed:
                return ["Invalid file extension. Allowed: " + ", ".join(allowed)]
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None or value == "" or not isinstance(value, str):
            return self.default_value
        return "".join(self.sanitize_common(value).split())

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "allowedTypes": config.get("allowed_types", ["jpg", "jpeg", "png", "gif", "webp"]),
            "maxSize": config.get("max_size", 5 * 1024 * 1024),
            "multiple": config.get("multiple", False),
            "preview": config.get("preview", True),
            "uploadUrl": config.get("upload_url", "/api/upload/image"),
            "aspectRatio": config.get("aspect_ratio"),
        }


class UrlField(FieldType):
    kind = "url"
    default = ""

    _PREFIXES = ("/", "#", "mailto:", "tel:")

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or value == "":
            return []
        if not isinstance(value, str):
            return ["Invalid URL format"]
        parsed = urlparse(value)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            return []
        if value.startswith(self._PREFIXES):
            return []
        return ["Invalid URL format"]

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, str):
            return self.default_value
        return "".join(self.sanitize_common(value).split())

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {"placeholder": config.get("placeholder", "https://")}


class IconField(FieldType):
    kind = "icon"
    default = ""

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is not None and not isinstance(value, str):
            return ["Value must be a string"]
        return []

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {"library": config.get("library", "lineicons"), "searchable": True}


class LinkField(FieldType):
    kind = "link"
    default = {
        "url": "",
        "text": "",
        "type": "external",
        "target": "_self",
        "rel": [],
        "title": "",
        "id": "",
        "class": "",
        "custom_attributes": [],
        "utm_parameters": {},
        "responsive_behavior": {},
    }

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None:
            return []
        if not isinstance(value, Mapping):
            return ["Link value must be an object"]
        errors: ErrorList = []
        url = value.get("url") or ""
        if not isinstance(url, str):
            return ["Invalid URL format"]
        if rules.get("required") and not url:
            errors.append("URL is required")
        if url:
            link_type = value.get("type", "external")
            if link_type == "email":
                if not (url.startswith("mailto:") or _EMAIL_RE.match(url)):
                    errors.append("Invalid email format")
            elif link_type == "phone":
                digits = url.replace("tel:", "")
                for char in " -()":
                    digits = digits.replace(char, "")
                if not _PHONE_RE.match(digits):
                    errors.append("Invalid phone number format")
            elif not (is_absolute_url(url) or url.startswith(("/", "#"))):
                errors.append("Invalid URL format")
        allowed_targets = rules.get("allowed_targets", LINK_TARGETS)
        if "target" in value and value["target"] not in allowed_targets:
            errors.append("Invalid target value")
        return errors

    def validate_common(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        # A link is required through its url, checked in ``check``.
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, Mapping):
            return self.default_value
        rules = rules or {}
        sanitized = self.default_value
        sanitized["url"] = "".join(str(value.get("url") or "").split())
        sanitized["text"] = strip_tags(str(value.get("text") or ""))
        link_type = value.get("type")
        sanitized["type"] = link_type if link_type in LINK_TYPES else "external"
        target = value.get("target")
        sanitized["target"] = target if target in LINK_TARGETS else rules.get("default_target", "_self")
        sanitized["title"] = strip_tags(str(value.get("title") or ""))
        sanitized["id"] = _ATTR_NAME_RE.sub("", str(value.get("id") or ""))
        sanitized["class"] = strip_tags(str(value.get("class") or ""))
        rel = value.get("rel")
        if isinstance(rel, list):
            sanitized["rel"] = [item for item in rel if item in REL_VALUES]
        attributes = value.get("custom_attributes")
        for attr in attributes if isinstance(attributes, list) else []:
            if isinstance(attr, Mapping) and "name" in attr and "value" in attr:
                sanitized["custom_attributes"].append(
                    {
                        "name": _ATTR_NAME_RE.sub("", str(attr["name"])),
                        "value": html.escape(str(attr["value"]), quote=True),
                    }
                )
        utm = value.get("utm_parameters")
        if isinstance(utm, Mapping):
            for key in UTM_KEYS:
                if key in utm:
                    sanitized["utm_parameters"][key] = strip_tags(str(utm[key]))
        if isinstance(value.get("responsive_behavior"), Mapping):
            sanitized["responsive_behavior"] = copy.deepcopy(dict(value["responsive_behavior"]))
        return sanitized

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "linkTypes": list(config.get("link_types", LINK_TYPES)),
            "targets": list(config.get("allowed_targets", LINK_TARGETS)),
            "relOptions": list(REL_VALUES),
            "enableUtm": config.get("enable_utm", False),
        }


def build_href(link: Mapping[str, Any]) -> str:
    """Final href for a sanitized link value, scheme prefixes and UTM parameters applied."""
    url = str(link.get("url") or "")
    link_type = link.get("type", "external")
    if link_type == "email" and not url.startswith("mailto:"):
        url = "mailto:" + url
    elif link_type == "phone" and not url.startswith("tel:"):
        url = "tel:" + url
    params = {key: value for key, value in (link.get("utm_parameters") or {}).items() if value}
    if params:
        separator = "&" if "?" in url else "?"
        url = url + separator + urlencode(params)
    return url


__all__ = ["ImageField", "UrlField", "IconField", "LinkField", "build_href", "LINK_TARGETS", "REL_VALUES"]
