from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from tracker.core.config import TrackerConfig, load_config
from tracker.features.bootstrap.service import PageLoad, bootstrap_page
from tracker.features.tracking.service import Tracker


@dataclass(frozen=True)
class ScriptStep:
    at_s: float
    action: str
    args: dict[str, Any]


@dataclass(frozen=True)
class RunResult:
    visitor_id: str | None
    session_id: str | None
    events_sent: int
    events_pending: int
    ingestion_kind: str


def _step_actions(load: PageLoad) -> dict[str, Callable[[dict[str, Any]], Any]]:
    page, t = load.page, load.tracker
    return {
        "scroll": lambda a: page.scroll_to(float(a.get("to", 0))),
        "hide": lambda a: page.hide(),
        "show": lambda a: page.show(),
        "unload": lambda a: page.unload(),
        "flush": lambda a: t.flush(reason="script"),
        "track": lambda a: t.track(str(a["event_type"]), a.get("data") or {}),
        "search": lambda a: t.track_search(str(a["term"]), int(a.get("results_count", 0))),
        "product_view": lambda a: t.track_product_view(a["product"]),
        "add_to_cart": lambda a: t.track_add_to_cart(a["product"], int(a.get("quantity", 1))),
        "remove_from_cart": lambda a: t.track_remove_from_cart(
            str(a["sku"]), str(a.get("name", ""))
        ),
        "checkout_start": lambda a: t.track_checkout_start(a.get("items") or [], float(a["total"])),
        "filter_category": lambda a: t.track_category_filter(str(a["category"])),
        "filter_featured": lambda a: t.track_featured_filter(a.get("value")),
    }


SCRIPT_ACTIONS = {
    "scroll",
    "hide",
    "show",
    "unload",
    "flush",
    "track",
    "search",
    "product_view",
    "add_to_cart",
    "remove_from_cart",
    "checkout_start",
    "filter_category",
    "filter_featured",
}


def parse_script(raw_steps: list[dict[str, Any]]) -> list[ScriptStep]:
    steps: list[ScriptStep] = []
    for idx, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            raise TypeError(f"script[{idx}] must be a mapping")
        action = str(raw.get("action", "")).strip().lower()
        if action not in SCRIPT_ACTIONS:
            raise ValueError(
                f"script[{idx}].action={action!r} unsupported. Allowed={sorted(SCRIPT_ACTIONS)}"
            )
        at_s = float(raw.get("at", 0.0))
        if at_s < 0:
            raise ValueError(f"script[{idx}].at must be >= 0")
        args = {k: v for k, v in raw.items() if k not in ("at", "action")}
        steps.append(ScriptStep(at_s=at_s, action=action, args=args))
    # stable: same-time steps keep file order
    return sorted(steps, key=lambda s: s.at_s)


def _drive(load: PageLoad, steps: list[ScriptStep]):
    env = load.env
    actions = _step_actions(load)
    for step in steps:
        if step.at_s > env.now:
            yield env.timeout(step.at_s - env.now)
        actions[step.action](step.args)
    if not load.page.closed:
        load.page.unload()


def run_page(load: PageLoad, steps: list[ScriptStep]) -> RunResult:
    tracker: Tracker = load.tracker
    tracker.init()
    load.env.process(_drive(load, steps))
    load.env.run()

    delivery = tracker.delivery
    return RunResult(
        visitor_id=tracker.visitor_id,
        session_id=tracker.session_id,
        events_sent=0 if delivery is None else delivery.events_sent,
        events_pending=len(tracker.queue),
        ingestion_kind="none" if load.ingestion is None else type(load.ingestion).__name__,
    )


def run_config(cfg: TrackerConfig) -> RunResult:
    steps = parse_script(cfg.script)
    load = bootstrap_page(cfg)
    try:
        return run_page(load, steps)
    finally:
        load.close()


def run(config_path: str) -> RunResult:
    cfg = load_config(config_path)
    return run_config(cfg)
