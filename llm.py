"""
Unified LLM caller. All model calls go through here.
Retries only when the CallPolicy allows more than one attempt (on 429),
with optional in-run response caching. Decoders turn raw model text into
Parsed/Rejected so callers can pick fallbacks without catching exceptions.
"""

import hashlib
import json
import logging
import os
import re
import time

import requests

from config import LLM_CONFIGS, CallPolicy
from models import Decoded, Parsed, Rejected

log = logging.getLogger(__name__)

# Simple in-memory cache for this run (avoids re-calling for identical prompts)
_cache = {}

_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*")


def get_available_llms(exclude=None, environ=None):
    environ = os.environ if environ is None else environ
    exclude = exclude or []
    return [k for k, v in LLM_CONFIGS.items()
            if k not in exclude and environ.get(v["env_key"])]


def pick_llm(preferred=None):
    """The configured LLM if its key is set, else the first available one."""
    available = get_available_llms()
    if preferred:
        return preferred if preferred in available else None
    return available[0] if available else None


def call_by_id(llm_id, system_prompt, user_prompt, max_tokens=1500,
               temperature=0.3, policy=None, use_cache=True):
    """Call an LLM by its config ID. Returns text or None."""
    if not llm_id or llm_id not in LLM_CONFIGS:
        return None
    config = LLM_CONFIGS[llm_id]
    api_key = os.environ.get(config["env_key"])
    if not api_key:
        return None
    return call(config, system_prompt, user_prompt, api_key,
                max_tokens, temperature, policy, use_cache)


def call(config, system_prompt, user_prompt, api_key, max_tokens=1500,
         temperature=0.3, policy=None, use_cache=True):
    """Unified LLM call honouring the retry policy, with optional caching."""
    policy = policy or CallPolicy()
    if use_cache:
        cache_key = hashlib.md5(
            "{}:{}:{}:{}:{}".format(config["provider"], config["model"],
                                    system_prompt, user_prompt, temperature).encode()
        ).hexdigest()
        if cache_key in _cache:
            return _cache[cache_key]
    else:
        cache_key = None

    label = "{}/{}".format(config["provider"], config["model"])
    for attempt in range(policy.max_attempts):
        try:
            result = _call_once(config, system_prompt, user_prompt, api_key,
                                max_tokens, temperature, policy.timeout)
            if result and cache_key:
                _cache[cache_key] = result
            return result
        except requests.exceptions.HTTPError as e:
            code = e.response.status_code if e.response is not None else "unknown"
            if code == 429 and attempt + 1 < policy.max_attempts:
                wait = (attempt + 1) * policy.backoff_seconds
                log.warning("    ... rate limited, waiting %ss (attempt %d/%d)",
                            wait, attempt + 1, policy.max_attempts)
                time.sleep(wait)
                continue
            log.warning("  X %s: HTTP %s", label, code)
            return None
        except requests.exceptions.RequestException as e:
            log.warning("  X %s: %s", label, str(e)[:100])
            return None
        except (KeyError, IndexError, TypeError, ValueError) as e:
            log.warning("  X %s: unexpected response shape (%s)", label, str(e)[:100])
            return None
    return None


def _call_once(config, system_prompt, user_prompt, api_key, max_tokens, temperature, timeout):
    if config["provider"] == "openai":
        headers = {"Authorization": "Bearer " + api_key, "Content-Type": "application/json"}
        payload = {
            "model": config["model"],
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            "max_tokens": max_tokens, "temperature": temperature
        }
        resp = requests.post(config["url"], headers=headers, json=payload, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
        choice = data["choices"][0]
        if choice.get("finish_reason") == "length":
            log.warning("    WARNING: %s hit max tokens (%d)", config["label"], max_tokens)
        return choice["message"]["content"] or None

    elif config["provider"] == "anthropic":
        headers = {
            "x-api-key": api_key, "content-type": "application/json",
            "anthropic-version": "2023-06-01"
        }
        payload = {
            "model": config["model"], "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}]
        }
        resp = requests.post(config["url"], headers=headers, json=payload, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
        if data.get("stop_reason") == "max_tokens":
            log.warning("    WARNING: %s hit max tokens (%d)", config["label"], max_tokens)
        return data["content"][0]["text"] or None

    raise ValueError("unsupported provider {}".format(config["provider"]))


def strip_fences(text):
    """Remove markdown code fences the model may wrap its output in."""
    if not text:
        return ""
    return _FENCE_RE.sub("", text).replace("```", "").strip()


def decode_html(text) -> Decoded:
    """Model HTML with fences removed. Empty output is rejected."""
    if text is None:
        return Rejected("no response")
    cleaned = strip_fences(text)
    if not cleaned:
        return Rejected("empty response")
    return Parsed(cleaned)


def decode_json(text, expect=dict) -> Decoded:
    """Parse a JSON object or array out of model text."""
    if text is None:
        return Rejected("no response")
    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
    except ValueError:
        # Prose around the payload: the first bracket must open the expected type
        opener = re.search(r"[\[{]", cleaned)
        if not opener or opener.group() != ("{" if expect is dict else "["):
            return Rejected("no JSON {} found".format(expect.__name__))
        pattern = r"\{.*\}" if expect is dict else r"\[.*\]"
        m = re.search(pattern, cleaned[opener.start():], re.DOTALL)
        if not m:
            return Rejected("no JSON {} found".format(expect.__name__))
        try:
            data = json.loads(m.group())
        except ValueError as e:
            return Rejected("invalid JSON: {}".format(str(e)[:80]))
    if not isinstance(data, expect):
        return Rejected("expected {}, got {}".format(expect.__name__, type(data).__name__))
    return Parsed(data)
