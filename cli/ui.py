from __future__ import annotations

import re
from typing import Dict, List, Optional


def choose_from_menu(title: str, options: Dict[str, object]) -> str:
    """Show a 1..N menu of keys in 'options' and return the chosen key."""
    keys = list(options.keys())
    if not keys:
        raise SystemExit(f"{title} (nothing to choose from)")
    print("\n" + title)
    for idx, key in enumerate(keys, start=1):
        print(f"[{idx}] {options[key]} ({key})")

    while True:
        choice = input(f"Enter number (1-{len(keys)}) or Z to exit: ").strip()
        if not choice:
            print("Please enter a number or Z to exit.")
            continue
        if choice.upper() == "Z":
            print("Exiting (Z selected).")
            raise SystemExit(0)
        if choice.isdigit():
            n = int(choice)
            if 1 <= n <= len(keys):
                return keys[n - 1]
        print(f"Invalid choice. Please enter 1-{len(keys)} or Z.")


def prompt_text(prompt: str, default: Optional[str] = None) -> str:
    """Prompt for free-text input with an optional default."""
    if default is not None:
        raw = input(f"{prompt} [{default}]: ").strip()
        return raw or str(default)
    return input(f"{prompt}: ").strip()


def parse_index_selection(raw: str, *, n: int) -> List[int]:
    """Parse a user selection like: 'all' or '1,3-5' into 0-based indices."""
    s = (raw or "").strip().lower()
    if not s:
        return []
    if s in {"all", "*"}:
        return list(range(n))

    out: set[int] = set()
    for part in re.split(r"[\s,]+", s):
        if not part:
            continue
        if part in {"z", "quit", "exit"}:
            raise SystemExit(0)
        if "-" in part:
            a, b = part.split("-", 1)
            if a.isdigit() and b.isdigit():
                lo, hi = sorted((int(a), int(b)))
                out.update(k - 1 for k in range(lo, hi + 1) if 1 <= k <= n)
            continue
        if part.isdigit() and 1 <= int(part) <= n:
            out.add(int(part) - 1)

    return sorted(out)


def choose_many(title: str, labels: List[str]) -> List[int]:
    """Numbered multi-select; returns 0-based indices (empty input = all)."""
    print("\n" + title)
    for idx, label in enumerate(labels, start=1):
        print(f"[{idx}] {label}")
    raw = input("Select (e.g. 1,3-4; blank or 'all' for everything; Z to exit): ")
    if not raw.strip():
        return list(range(len(labels)))
    return parse_index_selection(raw, n=len(labels))
