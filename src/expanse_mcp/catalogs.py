"""Remote asset catalogs and the local ``assets/`` folder.

PolyHaven is queried with plain ``urllib``; any network or decoding failure
surfaces as ``CatalogError`` so callers can decide whether to degrade.
"""

from __future__ import annotations

import asyncio
import json
import os
import urllib.error
import urllib.parse
import urllib.request
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .paths import resolve_path
from .shared.errors import CatalogError
from .shared.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "expanse-mcp"
POLYHAVEN_TYPES = ("hdris", "textures", "models", "all")
ASSET_TYPES = ("model", "texture", "hdri", "audio", "all")
SOURCES = ("local", "polyhaven", "poly-pizza")

MODEL_EXTENSIONS = (".glb", ".gltf", ".obj", ".fbx")
TEXTURE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".hdr", ".exr")
AUDIO_EXTENSIONS = (".mp3", ".wav", ".ogg")
LOCAL_SCAN_DEPTH = 3

_TYPE_TO_POLYHAVEN = {"hdri": "hdris", "texture": "textures", "model": "models"}


def _open(url: str, timeout: float) -> bytes:
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.read()
    except urllib.error.HTTPError as exc:
        raise CatalogError(f"HTTP {exc.code} from {url}") from exc
    except (urllib.error.URLError, OSError) as exc:
        raise CatalogError(f"Request to {url} failed: {exc}") from exc


def fetch_json(url: str, timeout: float = 15.0) -> Any:
    body = _open(url, timeout)
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Invalid JSON from {url}") from exc


def fetch_text(url: str, timeout: float = 15.0) -> str:
    return _open(url, timeout).decode("utf-8", errors="replace")


class PolyHavenClient:
    def __init__(self, base_url: str = "https://api.polyhaven.com", timeout: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def assets(self, asset_type: str = "all") -> Dict[str, Any]:
        url = f"{self.base_url}/assets?t={urllib.parse.quote(asset_type)}"
        data = fetch_json(url, self.timeout)
        if not isinstance(data, dict):
            raise CatalogError(f"Unexpected PolyHaven listing from {url}")
        return data

    def files(self, asset_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/files/{urllib.parse.quote(asset_id, safe='')}"
        data = fetch_json(url, self.timeout)
        if not isinstance(data, dict):
            raise CatalogError(f"Unexpected PolyHaven files payload from {url}")
        return data

    def entries(self, asset_type: str = "all") -> List[Tuple[str, Dict[str, Any]]]:
        """``(id, meta)`` pairs from the listing; entries that are not objects are skipped."""
        return [(asset_id, meta) for asset_id, meta in self.assets(asset_type).items() if isinstance(meta, dict)]

    def search(self, query: str, asset_type: str = "all", limit: int = 20) -> List[Dict[str, Any]]:
        needle = query.lower()
        items = []
        for asset_id, meta in self.entries(asset_type):
            name = str(meta.get("name") or asset_id)
            if needle in name.lower():
                items.append({"id": asset_id, "name": name, "data": meta})
                if len(items) >= limit:
                    break
        return items

    def categories(self, asset_type: str = "all") -> List[str]:
        found = set()
        for _, meta in self.entries(asset_type):
            categories = meta.get("categories")
            if isinstance(categories, list):
                found.update(c for c in categories if isinstance(c, str))
        return sorted(found)


def pick_download(files: Dict[str, Any], resolution: Optional[str] = None, fmt: Optional[str] = None) -> Optional[Dict[str, str]]:
    """First ``{format, resolution, url}`` in a PolyHaven files payload, honoring preferences."""
    keys = list(files)
    if fmt and fmt in files:
        keys = [fmt] + [k for k in keys if k != fmt]
    for key in keys:
        by_res = files[key]
        if not isinstance(by_res, dict) or not by_res:
            continue
        chosen = resolution if resolution and resolution in by_res else next(iter(by_res))
        entry = by_res[chosen]
        if isinstance(entry, dict):
            if isinstance(entry.get("url"), str):
                return {"format": key, "resolution": chosen, "url": entry["url"]}
            # models nest one level deeper: files[fmt][res][ext] = {url}
            for inner in entry.values():
                if isinstance(inner, dict) and isinstance(inner.get("url"), str):
                    return {"format": key, "resolution": chosen, "url": inner["url"]}
    return None


def download(url: str, dest_dir: Path, filename: Optional[str] = None, timeout: float = 60.0) -> Tuple[Path, int]:
    body = _open(url, timeout)
    name = filename or os.path.basename(urllib.parse.urlparse(url).path) or "download.bin"
    target = resolve_path(dest_dir, name)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(body)
    return target, len(body)


def unzip(archive: Path, dest_dir: Path) -> List[str]:
    """Extract ``archive`` into ``dest_dir``, rejecting members that escape it."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive) as zf:
        members = zf.infolist()
        for member in members:
            resolve_path(dest_dir, member.filename)
        zf.extractall(dest_dir)
    return [m.filename for m in members if not m.is_dir()]


# ---------------------------------------------------------------------------
# Unified search
# ---------------------------------------------------------------------------

def classify_extension(name: str) -> str:
    ext = os.path.splitext(name)[1].lower()
    if ext in MODEL_EXTENSIONS:
        return "model"
    if ext in TEXTURE_EXTENSIONS:
        return "texture"
    if ext in AUDIO_EXTENSIONS:
        return "audio"
    return "unknown"


def search_local_assets(root: Path) -> List[Dict[str, Any]]:
    assets_dir = root / "assets"
    results: List[Dict[str, Any]] = []

    def scan(directory: Path, depth: int) -> None:
        if depth > LOCAL_SCAN_DEPTH:
            return
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                scan(entry, depth + 1)
            elif entry.is_file():
                rel = Path(os.path.relpath(entry, root)).as_posix()
                results.append(
                    {"name": entry.name, "source": "local", "type": classify_extension(entry.name), "url": rel, "downloadUrl": rel, "score": 0}
                )

    if assets_dir.is_dir():
        scan(assets_dir, 0)
    return results


def search_polyhaven_assets(client: PolyHavenClient, asset_type: str = "all") -> List[Dict[str, Any]]:
    results = []
    for asset_id, meta in client.entries(asset_type):
        categories = meta.get("categories")
        labels = [c for c in categories if isinstance(c, str)] if isinstance(categories, list) else []
        kind = "unknown"
        if asset_type == "hdris" or meta.get("type") in (0, "hdri"):
            kind = "hdri"
        elif asset_type == "textures" or meta.get("type") in (1, "texture"):
            kind = "texture"
        elif asset_type == "models" or meta.get("type") in (2, "model"):
            kind = "model"
        results.append(
            {
                "name": meta.get("name") or asset_id,
                "id": asset_id,
                "source": "polyhaven",
                "type": kind,
                "url": f"https://polyhaven.com/a/{asset_id}",
                "description": ", ".join(labels),
                "score": 0,
            }
        )
    return results


def poly_pizza_results(query: str) -> List[Dict[str, Any]]:
    # Poly Pizza has no public search API; point the caller at the site.
    return [
        {
            "name": f'Search "{query}" on Poly Pizza',
            "source": "poly-pizza",
            "type": "model",
            "url": f"https://poly.pizza/search?q={urllib.parse.quote(query)}",
            "description": "Visit Poly Pizza to search for free 3D models from the Google Poly archive",
            "score": 0,
        }
    ]


def rank_results(results: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Score by name/description match and sort best first (stable on ties)."""
    lowered = query.lower()
    words = lowered.split()
    ranked = []
    for result in results:
        name = str(result.get("name", "")).lower()
        desc = str(result.get("description") or "").lower()
        score = 0
        if name == lowered:
            score += 100
        if name.startswith(lowered):
            score += 50
        if lowered in name:
            score += 25
        for word in words:
            if word in name:
                score += 10
            if word in desc:
                score += 5
        ranked.append({**result, "score": score})
    ranked.sort(key=lambda r: -r["score"])
    return ranked


async def _gather_source(name: str, func: Any, *args: Any) -> List[Dict[str, Any]]:
    try:
        return await asyncio.to_thread(func, *args)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Asset source %s failed: %s", name, exc, exc_info=True)
        return []


async def search_all(
    query: str,
    root: Path,
    client: PolyHavenClient,
    *,
    sources: Sequence[str] = ("all",),
    asset_type: str = "all",
    limit: int = 20,
) -> List[Dict[str, Any]]:
    """Query every selected source concurrently; a failing source contributes nothing."""
    wanted = set(SOURCES) if "all" in sources else set(sources)
    tasks = []
    if "local" in wanted:
        tasks.append(_gather_source("local", search_local_assets, root))
    if "polyhaven" in wanted:
        tasks.append(_gather_source("polyhaven", search_polyhaven_assets, client, _TYPE_TO_POLYHAVEN.get(asset_type, "all")))
    if "poly-pizza" in wanted:
        tasks.append(_gather_source("poly-pizza", poly_pizza_results, query))

    combined: List[Dict[str, Any]] = []
    for chunk in await asyncio.gather(*tasks):
        combined.extend(chunk)
    if asset_type != "all":
        combined = [r for r in combined if r["type"] == asset_type]
    return rank_results(combined, query)[:limit]
