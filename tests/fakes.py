"""In-memory stand-ins for the Playwright Page/Locator surface the core uses."""

from __future__ import annotations

from lazada_autoproc.processor import (
    DIALOG_FOOTER,
    OPTION_GROUP,
    OPTION_INPUT,
    OPTION_WRAPPER,
    SCAN_INPUT,
    SUBMIT_CONTROL,
)
from lazada_autoproc.scanner import TABLE_BODY, TABLE_ROW


class FakeClock:
    """Monotonic clock in seconds, advanced by hand in milliseconds."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


class FakeElement:
    """A single DOM node: text, value, and child nodes keyed by selector."""

    def __init__(self, text: str = "", children: dict | None = None, *, name: str = "", value: str = ""):
        self.text = text
        self.name = name or text
        self.value = value
        self.children = dict(children or {})
        self.events: list[str] = []
        self.focused = False
        self.text_selected = False
        self.disposed = False
        self.journal: list | None = None
        self.raises: Exception | None = None
        self.read_error: Exception | None = None

    # Locator-compatible surface
    def locator(self, selector: str) -> "FakeLocator":
        return FakeLocator(lambda: self.children.get(selector, []))

    # ElementHandle-compatible surface
    def element_handle(self, timeout: float | None = None) -> "FakeElement":
        return self

    def query_selector_all(self, selector: str) -> list:
        return list(self.children.get(selector, []))

    def dispose(self) -> None:
        self.disposed = True

    def text_content(self, timeout: float | None = None) -> str:
        if self.read_error is not None:
            raise self.read_error
        return self.text

    def input_value(self) -> str:
        return self.value

    def dispatch_event(self, event: str) -> None:
        if self.raises is not None:
            raise self.raises
        self.events.append(event)
        if self.journal is not None:
            self.journal.append((event, self.name))

    def focus(self) -> None:
        self.focused = True
        if self.journal is not None:
            self.journal.append(("focus", self.name))

    def select_text(self) -> None:
        self.text_selected = True

    @property
    def clicks(self) -> int:
        return self.events.count("click")

    def walk(self):
        yield self
        for nodes in self.children.values():
            for node in nodes:
                yield from node.walk()


class FakeLocator:
    """
    Zero or more matched elements, like a Playwright Locator.

    Resolution is lazy: every call re-reads the live children lists, so
    locators from .all() or .nth() are positional and follow DOM changes.
    """

    def __init__(self, resolve) -> None:
        self._resolve = resolve

    def _matches(self) -> list:
        return list(self._resolve())

    def all(self) -> list:
        return [self.nth(i) for i in range(self.count())]

    def count(self) -> int:
        return len(self._matches())

    def nth(self, index: int) -> "FakeLocator":
        def resolve():
            matches = self._matches()
            return matches[index:index + 1] if 0 <= index < len(matches) else []
        return FakeLocator(resolve)

    @property
    def first(self) -> "FakeLocator":
        return self.nth(0)

    def locator(self, selector: str) -> "FakeLocator":
        return FakeLocator(
            lambda: [child for element in self._matches() for child in element.children.get(selector, [])]
        )

    def _single(self) -> FakeElement:
        matches = self._matches()
        if not matches:
            raise LookupError("locator resolved to no elements")
        return matches[0]

    def all_text_contents(self) -> list[str]:
        return [element.text_content() for element in self._matches()]

    def element_handle(self, timeout: float | None = None) -> FakeElement:
        return self._single()

    def text_content(self, timeout: float | None = None) -> str:
        return self._single().text_content()

    def input_value(self) -> str:
        return self._single().input_value()

    def dispatch_event(self, event: str) -> None:
        self._single().dispatch_event(event)

    def focus(self) -> None:
        self._single().focus()

    def select_text(self) -> None:
        self._single().select_text()


class FakePage(FakeElement):
    """Page root. wait_for_timeout() is recorded and can drive a FakeClock."""

    url = "https://logistics.example.test/results"

    def __init__(self, children: dict | None = None, *, clock: FakeClock | None = None, close_after: int | None = None):
        super().__init__(children=children, name="page")
        self.journal = []
        self.waits: list[float] = []
        self.clock = clock
        self.close_after = close_after
        self.handlers: dict = {}
        self.closed = False
        for node in self.walk():
            node.journal = self.journal

    def wait_for_timeout(self, ms: float) -> None:
        self.waits.append(ms)
        self.journal.append(("wait", ms))
        if self.clock is not None:
            self.clock.advance(ms)
        if self.close_after is not None and len(self.waits) >= self.close_after:
            self.closed = True

    def is_closed(self) -> bool:
        return self.closed

    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str) -> None:
        for handler in self.handlers.get(event, []):
            handler(self)

    def title(self) -> str:
        return "Lazada Logistics"

    @property
    def clicked(self) -> list[str]:
        return [name for event, name in self.journal if event == "click"]


# ── Builders ─────────────────────────────────────────────────────────────

def make_row(
    identity: str,
    reason: str = "In transit",
    attempts: str = "0",
    *,
    cells: int = 11,
    buttons: tuple = ("View", "Edit"),
) -> FakeElement:
    texts = [""] * cells
    if cells > 0:
        texts[0] = identity
    if cells > 5:
        texts[5] = attempts
    if cells > 6:
        texts[6] = reason
    tds = [FakeElement(f"  {t}  " if t else t, name=f"{identity}:td") for t in texts]
    if tds:
        tds[-1].children["button"] = [
            FakeElement(f" {label} ", name=f"{identity}:{label}") for label in buttons
        ]
    return FakeElement(children={"td": tds}, name=identity)


def make_page(
    *tables,
    options: int = 2,
    radio_input: bool = True,
    dialog: bool = True,
    footer: bool = True,
    submit: bool = True,
    scan_input: bool = True,
    clock: FakeClock | None = None,
    close_after: int | None = None,
) -> FakePage:
    """Build a page with one tbody per *tables* entry (each a list of rows)."""
    children: dict = {
        TABLE_BODY: [FakeElement(children={TABLE_ROW: list(rows)}, name=f"tbody{i}") for i, rows in enumerate(tables)],
    }

    if dialog:
        labels = ["Yes", "No", "Maybe"][:options]
        wrappers = []
        for label in labels:
            inputs = [FakeElement(name=f"radio:{label}")] if radio_input else []
            wrappers.append(FakeElement(label, {OPTION_INPUT: inputs}, name=f"label:{label}"))
        children[OPTION_GROUP] = [FakeElement(children={OPTION_WRAPPER: wrappers}, name="group")]

    if footer:
        submits = [FakeElement("Submit", name="submit")] if submit else []
        children[DIALOG_FOOTER] = [FakeElement(children={SUBMIT_CONTROL: submits}, name="footer")]

    if scan_input:
        children[SCAN_INPUT] = [FakeElement(name="scan_input", value="LZ0001")]

    return FakePage(children, clock=clock, close_after=close_after)


def find(page: FakePage, name: str) -> FakeElement:
    for node in page.walk():
        if node.name == name:
            return node
    raise KeyError(name)
