from __future__ import annotations
from typing import Any, Dict
import json
import re
from pathlib import Path


# ============================================================================
# JSON File Operation Helpers
# ============================================================================

def load_json_file(file_path: Path, default: Any = None) -> Any:
    """Load JSON file with error handling. Returns default if file doesn't exist or fails to load."""
    if not file_path.exists():
        return default
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error loading JSON file {file_path}: {e}")
        return default


def save_json_file(file_path: Path, data: Any, create_dirs: bool = True) -> bool:
    """Save data to JSON file with error handling. Returns True if successful."""
    try:
        if create_dirs:
            file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return True
    except (OSError, TypeError) as e:
        print(f"Error saving JSON file {file_path}: {e}")
        return False


# ============================================================================
# Lenient parsing of model output
# ============================================================================

def fix_incomplete_json(json_str: str) -> str:
    """Try to fix incomplete JSON by closing strings, brackets and braces."""
    if not json_str or not json_str.strip():
        return "{}"

    json_str = json_str.strip()
    if not json_str.startswith('{'):
        json_str = '{' + json_str

    # Walk the text once to learn whether we stopped inside a string and
    # which containers are still open, innermost last.
    stack = []
    in_string = False
    escaped = False
    for ch in json_str:
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in '{[':
            stack.append(ch)
        elif ch in '}]' and stack:
            stack.pop()

    if in_string:
        if escaped:
            json_str = json_str[:-1]
        json_str += '"'

    # A dangling comma or key separator cannot be completed; drop it
    json_str = json_str.rstrip()
    while json_str and json_str[-1] in ',:':
        json_str = json_str[:-1].rstrip()
        if json_str.endswith('"') and stack and stack[-1] == '{':
            # Key without a value: remove the orphaned key as well
            key_start = json_str.rfind('"', 0, len(json_str) - 1)
            if key_start != -1 and json_str[:key_start].rstrip().endswith((',', '{')):
                json_str = json_str[:key_start].rstrip()

    for opener in reversed(stack):
        json_str += '}' if opener == '{' else ']'

    # Remove trailing commas before closing brackets/braces
    json_str = re.sub(r',\s*}', '}', json_str)
    json_str = re.sub(r',\s*]', ']', json_str)

    return json_str


def parse_json_lenient(raw: str) -> Dict[str, Any]:
    """
    Parse a model response into a JSON object.

    Strips markdown fences and surrounding prose, then falls back to
    ``fix_incomplete_json`` for truncated output. Raises ValueError when
    the text is empty or still cannot be parsed into an object.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ValueError("Empty response from AI service.")

    no_fences = re.sub(r'^```(?:json)?', '', trimmed, flags=re.IGNORECASE)
    no_fences = re.sub(r'```$', '', no_fences).strip()

    first_brace = no_fences.find('{')
    last_brace = no_fences.rfind('}')
    if first_brace != -1 and last_brace > first_brace:
        json_slice = no_fences[first_brace:last_brace + 1]
    else:
        json_slice = no_fences

    try:
        parsed = json.loads(json_slice)
    except json.JSONDecodeError:
        # Truncated output: repair from the first brace to the very end
        tail = no_fences[first_brace:] if first_brace != -1 else no_fences
        try:
            parsed = json.loads(fix_incomplete_json(tail))
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse structured JSON from response: {e}") from e
        print("Warning: Used fallback JSON parsing for model response")

    if not isinstance(parsed, dict):
        raise ValueError("AI response was not a JSON object.")
    return parsed
