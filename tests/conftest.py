"""
共用測試資料：最小的設計匯出 payload（Figma 節點格式）。
"""
import pytest


def solid(r, g, b, a=1.0, **extra):
    paint = {"type": "SOLID", "color": {"r": r, "g": g, "b": b, "a": a}}
    paint.update(extra)
    return paint


def box(node_id, name, x=0, y=0, w=100, h=100, kind="FRAME", children=None, **extra):
    node = {
        "id": node_id,
        "name": name,
        "type": kind,
        "absoluteBoundingBox": {"x": x, "y": y, "width": w, "height": h},
        "children": children or [],
    }
    node.update(extra)
    return node


def text(node_id, name, characters, x=0, y=0, w=80, h=20, **extra):
    node = box(node_id, name, x, y, w, h, kind="TEXT", characters=characters,
               style={"fontFamily": "Inter", "fontSize": 14, "fontWeight": 500})
    node.update(extra)
    return node


@pytest.fixture
def button_payload():
    """#007aff 按鈕，圓角 6，文字 Click me."""
    return [
        box("1:1", "Button", w=120, h=40, fills=[solid(0, 0.48, 1)], cornerRadius=6,
            children=[text("1:2", "Label", "Click me", x=20, y=10, fills=[solid(1, 1, 1)])]),
    ]


@pytest.fixture
def list_payload():
    rows = [
        box(f"2:{i + 2}", f"Row {i + 1}", x=0, y=i * 60, w=300, h=50,
            children=[text(f"2:{i + 10}", "Title", f"Item {i + 1}", x=10, y=i * 60 + 15)])
        for i in range(4)
    ]
    return [box("2:1", "List", w=300, h=230, children=rows)]


@pytest.fixture
def card_payload():
    return [
        box("3:1", "Card", w=240, h=320, fills=[solid(1, 1, 1)], children=[
            box("3:2", "Image", w=240, h=160, kind="RECTANGLE",
                fills=[{"type": "IMAGE", "imageRef": "abc123", "scaleMode": "FILL"}]),
            text("3:3", "Title", "Mountain trip", x=16, y=176),
            text("3:4", "Body", "Three days in the Alps", x=16, y=204),
        ]),
    ]


@pytest.fixture
def form_payload():
    border = [solid(0.8, 0.8, 0.8)]
    return [
        box("4:1", "LoginForm", w=320, h=260, children=[
            text("4:2", "EmailLabel", "Email", x=0, y=0),
            box("4:3", "EmailInput", x=0, y=24, w=280, h=40, kind="RECTANGLE", strokes=border, strokeWeight=1),
            text("4:4", "PasswordLabel", "Password", x=0, y=80),
            box("4:5", "PasswordInput", x=0, y=104, w=280, h=40, kind="RECTANGLE", strokes=border, strokeWeight=1),
            box("4:6", "SubmitButton", x=0, y=170, w=120, h=40, fills=[solid(0, 0.48, 1)], children=[
                text("4:7", "Label", "Submit", x=30, y=180, fills=[solid(1, 1, 1)]),
            ]),
        ]),
    ]


@pytest.fixture
def nav_payload():
    widths = [60, 70, 50, 80]
    labels = ["Home", "Products", "About", "Contact"]
    items = []
    x = 0
    for i, (w, label) in enumerate(zip(widths, labels)):
        items.append(text(f"5:{i + 2}", label, label, x=x, y=0, w=w, h=20))
        x += w + 24
    return [box("5:1", "Navigation", w=400, h=20, children=items)]


@pytest.fixture
def grid_payload():
    cells = []
    for row in range(2):
        for col in range(3):
            idx = row * 3 + col
            cells.append(box(f"6:{idx + 2}", f"Tile {idx + 1}", x=col * 120, y=row * 120, w=100, h=100,
                             kind="RECTANGLE", fills=[solid(0.9, 0.9, 0.9)]))
    return [box("6:1", "Gallery", w=340, h=220, children=cells)]
