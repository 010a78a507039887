#!/usr/bin/env python3
"""
figma-bridge CLI — exported design JSON → components, tokens, analyses

  figma-bridge generate payload.json --framework react --styling scss --output ./out
  figma-bridge tokens payload.json --format css
  figma-bridge analyze payload.json
  figma-bridge preview payload.json
  figma-bridge search Button --input payload.json
  figma-bridge fetch --file-key KEY --output payload.json
  figma-bridge watch ./exports --output ./out
"""

import argparse
import json
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

import requests
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from . import __version__
from .config import DEFAULT_CONFIG_PATH, configure_logging, load_config, resolve_token, transform_defaults
from .emitter import build_library_index
from .errors import BridgeError, ConfigurationError
from .figma_reader import FigmaAPIClient, fetch_batches
from .models import TransformOptions
from .naming import preview_naming_tree
from .normalizer import count_nodes, normalize_batch
from .service import BridgeService
from .tokens import format_tokens, token_counts

_WATCHED_EXTENSIONS = (".json",)

_TOKEN_EXTENSIONS = {"css": "css", "scss": "scss", "js": "js", "json": "json"}


def _load_payload(path: str) -> dict:
    """Read an export file: {components, metadata} or a bare list of nodes."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        return {"components": data, "metadata": {}}
    if not isinstance(data, dict) or "components" not in data:
        raise ValueError(f"'{path}' 不是有效的匯出檔（需要 components 陣列）")
    data.setdefault("metadata", {})
    return data


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _report_error(exc: BridgeError) -> None:
    print(f"❌ {exc.message}")
    details = exc.details()
    if isinstance(exc, ConfigurationError) and details:
        print(f"   Supported: {', '.join(details)}")
    elif details:
        for item in details[:10]:
            print(f"   • {item['path']}.{item['field']}: {item['message']}")


def _options_from_args(args, config: dict) -> TransformOptions:
    overrides = {}
    for attr, key in (
        ("framework", "framework"),
        ("styling", "styling"),
        ("naming", "namingConvention"),
    ):
        value = getattr(args, attr, None)
        if value:
            overrides[key] = value
    if getattr(args, "typed", None) is not None:
        overrides["typedOutput"] = args.typed
    if getattr(args, "no_props", False):
        overrides["includeProps"] = False
    if getattr(args, "no_types", False):
        overrides["includeTypeDeclarations"] = False
    if getattr(args, "stories", False):
        overrides["generateStorybookStub"] = True
    if getattr(args, "tests", False):
        overrides["generateTestStub"] = True
    if getattr(args, "breakpoint", None):
        overrides["responsiveBreakpoints"] = args.breakpoint
    return TransformOptions.from_dict(overrides, transform_defaults(config))


# ════════════════════════════════════════════════════════════
# Commands
# ════════════════════════════════════════════════════════════

def generate_files(payload: dict, options: TransformOptions, output_dir: str, with_index: bool = False) -> List[Path]:
    """Transform one payload and write every artifact; returns the written paths."""
    service = BridgeService()
    result = service.transform(payload["components"], options)
    base = Path(output_dir)
    written = []
    for comp in result.components:
        if not comp.ok:
            print(f"   ⚠️  {comp.name}: {comp.error}")
            continue
        for file_name, content in comp.files().items():
            _write(base / file_name, content)
            written.append(base / file_name)
    if options.extract_tokens:
        tokens = service.extract_tokens(payload["components"])
        if tokens:
            _write(base / "design-tokens.css", format_tokens(tokens, "css"))
            written.append(base / "design-tokens.css")
    if with_index:
        index = build_library_index(result.components, options)
        if index:
            name = "index.ts" if options.typed_output or options.framework.value == "angular" else "index.js"
            _write(base / name, index)
            written.append(base / name)
    return written


def cmd_generate(args, config: dict) -> int:
    output_dir = args.output or config.get("transform", {}).get("outputDir") or "./generated"
    try:
        payload = _load_payload(args.input)
        options = _options_from_args(args, config)
        written = generate_files(payload, options, output_dir, with_index=args.index)
    except BridgeError as exc:
        _report_error(exc)
        return 1
    except (OSError, ValueError) as exc:
        print(f"❌ Generate failed: {exc}")
        return 1
    print(f"✅ Generated {len(written)} file(s) [{options.framework.value}+{options.styling.value}] to {output_dir}")
    return 0


def cmd_tokens(args, config: dict) -> int:
    try:
        payload = _load_payload(args.input)
        tokens = BridgeService().extract_tokens(payload["components"])
    except BridgeError as exc:
        _report_error(exc)
        return 1
    except (OSError, ValueError) as exc:
        print(f"❌ Token extraction failed: {exc}")
        return 1

    content = format_tokens(tokens, args.format)
    if args.output:
        _write(Path(args.output), content)
        counts = token_counts(tokens)
        print(f"✅ {len(tokens)} token(s) written to {args.output}")
        for category, count in counts.items():
            print(f"   • {category}: {count}")
    else:
        print(content, end="")
    return 0


def cmd_analyze(args, config: dict) -> int:
    try:
        payload = _load_payload(args.input)
        report = BridgeService().analyze_summary(payload["components"])
    except BridgeError as exc:
        _report_error(exc)
        return 1
    except (OSError, ValueError) as exc:
        print(f"❌ Analyze failed: {exc}")
        return 1

    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
        return 0

    overview = report["overview"]
    print(f"📊 {overview['totalComponents']} component(s), {overview['totalNodes']} node(s), "
          f"average depth {overview['averageDepth']}")
    for comp in report["components"]:
        print(f"   • {comp['name']}: {comp['pattern']}, {comp['complexityBucket']} "
              f"(score {comp['complexityScore']}, reusability {comp['reusabilityScore']})")
        for finding in comp["accessibility"]:
            print(f"     ⚠️  {finding['nodeName']}: {finding['message']}")
    for rec in overview["recommendations"]:
        print(f"   💡 {rec}")
    return 0


def cmd_preview(args, config: dict) -> int:
    """預覽命名樹."""
    try:
        payload = _load_payload(args.input)
        roots = normalize_batch(payload["components"])
    except BridgeError as exc:
        _report_error(exc)
        return 1
    except (OSError, ValueError) as exc:
        print(f"❌ Preview failed: {exc}")
        return 1
    print(f"👁️  Naming tree: {args.input} ({count_nodes(roots)} nodes)")
    for root in roots:
        print(preview_naming_tree(root))
    return 0


def cmd_search(args, config: dict) -> int:
    service = BridgeService()
    try:
        for path in args.input:
            payload = _load_payload(path)
            service.ingest(payload["components"], payload["metadata"], session_id=Path(path).stem)
    except BridgeError as exc:
        _report_error(exc)
        return 1
    except (OSError, ValueError) as exc:
        print(f"❌ Search failed: {exc}")
        return 1

    limit = args.limit or config.get("server", {}).get("searchLimit") or 50
    result = service.search(args.query, limit)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0
    print(f"🔍 '{args.query}': {len(result.exact)} exact, {len(result.partial)} partial")
    for hit in result.exact:
        print(f"   = {hit.alias}  [{hit.session_id}/{hit.component_id}]")
    for hit in result.partial:
        print(f"   ~ {hit.alias}  [{hit.session_id}/{hit.component_id}] {hit.similarity:.2f}")
    return 0 if result.exact or result.partial else 1


def cmd_fetch(args, config: dict) -> int:
    figma_cfg = config.get("figma", {})
    token = resolve_token(config, args.token)
    file_key = args.file_key or figma_cfg.get("fileKey")

    if not token:
        print("❌ 請設定 FIGMA_TOKEN 環境變數，或在 figma-bridge.config.json 的 figma.personalAccessToken 設定。")
        return 1
    if not file_key:
        print("❌ 請使用 --file-key 或在 config 的 figma.fileKey 設定 Figma 檔案 key。")
        return 1

    client = FigmaAPIClient(token)
    try:
        batches = fetch_batches(
            client,
            file_key,
            node_ids=args.node_id,
            page_name=args.page or figma_cfg.get("page"),
            page_index=args.page_index if args.page_index is not None else figma_cfg.get("pageIndex"),
            all_pages=args.all_pages,
        )
    except requests.RequestException as exc:
        print(f"❌ Fetch failed: {exc}")
        return 1
    if not batches:
        print("❌ No matching Figma pages found.")
        return 1

    output = Path(args.output or f"{file_key}.json")
    if len(batches) == 1:
        _write(output, json.dumps(batches[0], indent=2, ensure_ascii=False))
        print(f"✅ Saved {len(batches[0]['components'])} component(s) to {output}")
    else:
        for batch in batches:
            page = batch["metadata"].get("currentPage", {}).get("name") or "page"
            path = output.with_name(f"{output.stem}-{page.replace(' ', '-').lower()}{output.suffix or '.json'}")
            _write(path, json.dumps(batch, indent=2, ensure_ascii=False))
            print(f"✅ Saved {len(batch['components'])} component(s) to {path}")
    return 0


class ChangeHandler(FileSystemEventHandler):
    """檔案變更事件處理器，帶 debounce 防抖。"""

    def __init__(self, callback, debounce: float = 1.0):
        self.callback = callback
        self.last_trigger = 0.0
        self.debounce_seconds = debounce
        self._lock = threading.Lock()

    def _handle(self, path: str) -> None:
        if not path.endswith(_WATCHED_EXTENSIONS):
            return
        with self._lock:
            current_time = time.time()
            if current_time - self.last_trigger < self.debounce_seconds:
                return
            self.last_trigger = current_time
        print(f"\n🔄 File changed: {path}")
        self.callback(path)

    def on_modified(self, event):
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event):
        if event.is_directory:
            return
        self._handle(event.src_path)


def cmd_watch(args, config: dict) -> int:
    """Watch: 監聽匯出檔變更並自動重新產生元件."""
    watch_cfg = config.get("watch", {})
    watch_dir = args.path or watch_cfg.get("path") or "."
    output_dir = args.output or config.get("transform", {}).get("outputDir") or "./generated"
    debounce = watch_cfg.get("debounce", 1.0)
    try:
        options = _options_from_args(args, config)
    except BridgeError as exc:
        _report_error(exc)
        return 1

    def regenerate(path: str) -> None:
        try:
            written = generate_files(_load_payload(path), options, output_dir)
        except BridgeError as exc:
            _report_error(exc)
            return
        except (OSError, ValueError) as exc:
            print(f"   ⚠️  Regenerate failed: {exc}")
            return
        print(f"   ✅ {len(written)} file(s) written to {output_dir}")

    print(f"👀 Watching for exports in '{watch_dir}'...")
    print(f"   Output: {output_dir} [{options.framework.value}+{options.styling.value}]")
    print("   Press Ctrl+C to stop.")

    event_handler = ChangeHandler(regenerate, debounce=debounce)
    observer = Observer()
    observer.schedule(event_handler, path=watch_dir, recursive=True)
    observer.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n👋 Stopping watch...")
        observer.stop()
    finally:
        observer.join()
    return 0


# ════════════════════════════════════════════════════════════
# Parser
# ════════════════════════════════════════════════════════════

def _add_transform_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--framework", help="react | vue | angular")
    p.add_argument("--styling", help="plain-css | scss | css-in-source | utility-classes")
    p.add_argument("--naming", help="pascal | camel | kebab")
    p.add_argument("--typed", dest="typed", action="store_true", default=None, help="TypeScript output")
    p.add_argument("--untyped", dest="typed", action="store_false", help="JavaScript output")
    p.add_argument("--no-props", action="store_true", help="Inline text instead of props")
    p.add_argument("--no-types", action="store_true", help="Skip the separate types file")
    p.add_argument("--stories", action="store_true", help="Emit Storybook stubs")
    p.add_argument("--tests", action="store_true", help="Emit test stubs")
    p.add_argument("--breakpoint", action="append", help="Responsive breakpoint (repeatable), e.g. 768 or md")
    p.add_argument("--output", "-o", help="Output directory")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="figma-bridge",
        description="figma-bridge: design export → framework components",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Config path")
    parser.add_argument("--log-level", help="DEBUG | INFO | WARNING | ERROR")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    gen_p = sub.add_parser("generate", help="Export JSON → component files",
        epilog="Examples:\n  figma-bridge generate button.json\n  figma-bridge generate page.json --framework vue --styling scss -o ./src/components",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    gen_p.add_argument("input", help="Export JSON file")
    _add_transform_args(gen_p)
    gen_p.add_argument("--index", action="store_true", help="Write an index re-exporting every component")

    tok_p = sub.add_parser("tokens", help="Extract design tokens")
    tok_p.add_argument("input", help="Export JSON file")
    tok_p.add_argument("--format", choices=sorted(_TOKEN_EXTENSIONS), default="css")
    tok_p.add_argument("--output", "-o", help="Output file (stdout if omitted)")

    ana_p = sub.add_parser("analyze", help="Pattern / complexity / accessibility report")
    ana_p.add_argument("input", help="Export JSON file")
    ana_p.add_argument("--json", action="store_true", help="Print the raw report")

    pre_p = sub.add_parser("preview", help="Preview naming tree")
    pre_p.add_argument("input", help="Export JSON file")

    search_p = sub.add_parser("search", help="Search components by alias",
        epilog="Examples:\n  figma-bridge search Button --input a.json --input b.json",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    search_p.add_argument("query")
    search_p.add_argument("--input", "-i", action="append", required=True, help="Export JSON file (repeatable)")
    search_p.add_argument("--limit", type=int, help="Maximum matches")
    search_p.add_argument("--json", action="store_true")

    fetch_p = sub.add_parser("fetch", help="Figma REST API → export JSON")
    fetch_p.add_argument("--file-key", help="Figma file key")
    fetch_p.add_argument("--node-id", action="append", help="Node id to fetch (repeatable)")
    fetch_p.add_argument("--page", help="Page name to export")
    fetch_p.add_argument("--page-index", type=int, help="Page index to export")
    fetch_p.add_argument("--all-pages", action="store_true", help="Export all pages")
    fetch_p.add_argument("--token", help="Personal access token (default: FIGMA_TOKEN)")
    fetch_p.add_argument("--output", "-o", help="Output JSON path")

    watch_p = sub.add_parser("watch", help="Regenerate components when export files change")
    watch_p.add_argument("path", nargs="?", help="Directory to watch")
    _add_transform_args(watch_p)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    configure_logging(args.log_level, config)

    commands = {
        "generate": cmd_generate,
        "tokens": cmd_tokens,
        "analyze": cmd_analyze,
        "preview": cmd_preview,
        "search": cmd_search,
        "fetch": cmd_fetch,
        "watch": cmd_watch,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args, config)


if __name__ == "__main__":
    sys.exit(main())
