"""Utility-class lookup tables.

Maps Tailwind-style class tokens to React style properties. Values are
either strings (emitted quoted) or numbers (emitted bare). Tokens with
variant prefixes (``hover:``, ``md:``) never resolve: they describe
interaction or viewport states a rendered frame does not have.
"""

from __future__ import annotations

import re

type StyleValue = str | int | float
type StyleMap = dict[str, StyleValue]

# ── Scales ───────────────────────────────────────────────

SPACING: dict[str, str] = {"0": "0px", "px": "1px"}
for _step in (0.5, 1, 1.5, 2, 2.5, 3, 3.5, 4, 5, 6, 7, 8, 9, 10, 11, 12, 14,
              16, 20, 24, 28, 32, 36, 40, 44, 48, 52, 56, 60, 64, 72, 80, 96):
    SPACING[f"{_step:g}"] = f"{_step * 4:g}px"

FRACTIONS: dict[str, str] = {
    "1/2": "50%", "1/3": "33.333333%", "2/3": "66.666667%",
    "1/4": "25%", "3/4": "75%", "1/5": "20%", "2/5": "40%",
    "3/5": "60%", "4/5": "80%", "full": "100%",
}

MAX_WIDTHS: dict[str, str] = {
    "xs": "20rem", "sm": "24rem", "md": "28rem", "lg": "32rem",
    "xl": "36rem", "2xl": "42rem", "3xl": "48rem", "4xl": "56rem",
    "5xl": "64rem", "6xl": "72rem", "7xl": "80rem", "full": "100%",
    "none": "none", "prose": "65ch",
}

FONT_SIZES: dict[str, tuple[str, StyleValue]] = {
    "xs": ("12px", "16px"),
    "sm": ("14px", "20px"),
    "base": ("16px", "24px"),
    "lg": ("18px", "28px"),
    "xl": ("20px", "28px"),
    "2xl": ("24px", "32px"),
    "3xl": ("30px", "36px"),
    "4xl": ("36px", "40px"),
    "5xl": ("48px", 1),
    "6xl": ("60px", 1),
    "7xl": ("72px", 1),
    "8xl": ("96px", 1),
    "9xl": ("128px", 1),
}

FONT_WEIGHTS: dict[str, int] = {
    "thin": 100, "extralight": 200, "light": 300, "normal": 400,
    "medium": 500, "semibold": 600, "bold": 700, "extrabold": 800,
    "black": 900,
}

RADII: dict[str, str] = {
    "none": "0px", "sm": "2px", "": "4px", "md": "6px", "lg": "8px",
    "xl": "12px", "2xl": "16px", "3xl": "24px", "full": "9999px",
}

SHADOWS: dict[str, str] = {
    "sm": "0 1px 2px 0 rgba(0, 0, 0, 0.05)",
    "": "0 1px 3px 0 rgba(0, 0, 0, 0.1), 0 1px 2px -1px rgba(0, 0, 0, 0.1)",
    "md": "0 4px 6px -1px rgba(0, 0, 0, 0.1), 0 2px 4px -2px rgba(0, 0, 0, 0.1)",
    "lg": "0 10px 15px -3px rgba(0, 0, 0, 0.1), 0 4px 6px -4px rgba(0, 0, 0, 0.1)",
    "xl": "0 20px 25px -5px rgba(0, 0, 0, 0.1), 0 8px 10px -6px rgba(0, 0, 0, 0.1)",
    "2xl": "0 25px 50px -12px rgba(0, 0, 0, 0.25)",
    "inner": "inset 0 2px 4px 0 rgba(0, 0, 0, 0.05)",
    "none": "none",
}

# Tailwind v3 palette, shades 50-900
PALETTE: dict[str, dict[str, str]] = {
    "slate": {
        "50": "#f8fafc", "100": "#f1f5f9", "200": "#e2e8f0", "300": "#cbd5e1",
        "400": "#94a3b8", "500": "#64748b", "600": "#475569", "700": "#334155",
        "800": "#1e293b", "900": "#0f172a",
    },
    "gray": {
        "50": "#f9fafb", "100": "#f3f4f6", "200": "#e5e7eb", "300": "#d1d5db",
        "400": "#9ca3af", "500": "#6b7280", "600": "#4b5563", "700": "#374151",
        "800": "#1f2937", "900": "#111827",
    },
    "red": {
        "50": "#fef2f2", "100": "#fee2e2", "200": "#fecaca", "300": "#fca5a5",
        "400": "#f87171", "500": "#ef4444", "600": "#dc2626", "700": "#b91c1c",
        "800": "#991b1b", "900": "#7f1d1d",
    },
    "orange": {
        "50": "#fff7ed", "100": "#ffedd5", "200": "#fed7aa", "300": "#fdba74",
        "400": "#fb923c", "500": "#f97316", "600": "#ea580c", "700": "#c2410c",
        "800": "#9a3412", "900": "#7c2d12",
    },
    "yellow": {
        "50": "#fefce8", "100": "#fef9c3", "200": "#fef08a", "300": "#fde047",
        "400": "#facc15", "500": "#eab308", "600": "#ca8a04", "700": "#a16207",
        "800": "#854d0e", "900": "#713f12",
    },
    "green": {
        "50": "#f0fdf4", "100": "#dcfce7", "200": "#bbf7d0", "300": "#86efac",
        "400": "#4ade80", "500": "#22c55e", "600": "#16a34a", "700": "#15803d",
        "800": "#166534", "900": "#14532d",
    },
    "cyan": {
        "50": "#ecfeff", "100": "#cffafe", "200": "#a5f3fc", "300": "#67e8f9",
        "400": "#22d3ee", "500": "#06b6d4", "600": "#0891b2", "700": "#0e7490",
        "800": "#155e75", "900": "#164e63",
    },
    "blue": {
        "50": "#eff6ff", "100": "#dbeafe", "200": "#bfdbfe", "300": "#93c5fd",
        "400": "#60a5fa", "500": "#3b82f6", "600": "#2563eb", "700": "#1d4ed8",
        "800": "#1e40af", "900": "#1e3a8a",
    },
    "indigo": {
        "50": "#eef2ff", "100": "#e0e7ff", "200": "#c7d2fe", "300": "#a5b4fc",
        "400": "#818cf8", "500": "#6366f1", "600": "#4f46e5", "700": "#4338ca",
        "800": "#3730a3", "900": "#312e81",
    },
    "purple": {
        "50": "#faf5ff", "100": "#f3e8ff", "200": "#e9d5ff", "300": "#d8b4fe",
        "400": "#c084fc", "500": "#a855f7", "600": "#9333ea", "700": "#7e22ce",
        "800": "#6b21a8", "900": "#581c87",
    },
    "pink": {
        "50": "#fdf2f8", "100": "#fce7f3", "200": "#fbcfe8", "300": "#f9a8d4",
        "400": "#f472b6", "500": "#ec4899", "600": "#db2777", "700": "#be185d",
        "800": "#9d174d", "900": "#831843",
    },
}

NAMED_COLORS: dict[str, str] = {
    "white": "#ffffff",
    "black": "#000000",
    "transparent": "transparent",
    "current": "currentColor",
}

# ── Fixed tokens ─────────────────────────────────────────

STATIC: dict[str, StyleMap] = {
    # display
    "block": {"display": "block"},
    "inline-block": {"display": "inline-block"},
    "inline": {"display": "inline"},
    "flex": {"display": "flex"},
    "inline-flex": {"display": "inline-flex"},
    "grid": {"display": "grid"},
    "hidden": {"display": "none"},
    # flexbox
    "flex-row": {"flexDirection": "row"},
    "flex-col": {"flexDirection": "column"},
    "flex-row-reverse": {"flexDirection": "row-reverse"},
    "flex-col-reverse": {"flexDirection": "column-reverse"},
    "flex-wrap": {"flexWrap": "wrap"},
    "flex-nowrap": {"flexWrap": "nowrap"},
    "flex-1": {"flex": "1 1 0%"},
    "flex-auto": {"flex": "1 1 auto"},
    "flex-none": {"flex": "none"},
    "grow": {"flexGrow": 1},
    "shrink-0": {"flexShrink": 0},
    "justify-start": {"justifyContent": "flex-start"},
    "justify-end": {"justifyContent": "flex-end"},
    "justify-center": {"justifyContent": "center"},
    "justify-between": {"justifyContent": "space-between"},
    "justify-around": {"justifyContent": "space-around"},
    "justify-evenly": {"justifyContent": "space-evenly"},
    "items-start": {"alignItems": "flex-start"},
    "items-end": {"alignItems": "flex-end"},
    "items-center": {"alignItems": "center"},
    "items-baseline": {"alignItems": "baseline"},
    "items-stretch": {"alignItems": "stretch"},
    "self-start": {"alignSelf": "flex-start"},
    "self-center": {"alignSelf": "center"},
    "self-end": {"alignSelf": "flex-end"},
    "content-center": {"alignContent": "center"},
    "place-items-center": {"placeItems": "center"},
    # position
    "static": {"position": "static"},
    "relative": {"position": "relative"},
    "absolute": {"position": "absolute"},
    "fixed": {"position": "fixed"},
    "sticky": {"position": "sticky"},
    "inset-0": {"top": 0, "right": 0, "bottom": 0, "left": 0},
    "inset-x-0": {"left": 0, "right": 0},
    "inset-y-0": {"top": 0, "bottom": 0},
    # sizing
    "w-screen": {"width": "100vw"},
    "h-screen": {"height": "100vh"},
    "w-auto": {"width": "auto"},
    "h-auto": {"height": "auto"},
    "min-h-screen": {"minHeight": "100vh"},
    "min-h-full": {"minHeight": "100%"},
    "min-w-0": {"minWidth": 0},
    "mx-auto": {"marginLeft": "auto", "marginRight": "auto"},
    "my-auto": {"marginTop": "auto", "marginBottom": "auto"},
    "m-auto": {"margin": "auto"},
    # typography
    "text-left": {"textAlign": "left"},
    "text-center": {"textAlign": "center"},
    "text-right": {"textAlign": "right"},
    "text-justify": {"textAlign": "justify"},
    "italic": {"fontStyle": "italic"},
    "not-italic": {"fontStyle": "normal"},
    "uppercase": {"textTransform": "uppercase"},
    "lowercase": {"textTransform": "lowercase"},
    "capitalize": {"textTransform": "capitalize"},
    "underline": {"textDecoration": "underline"},
    "line-through": {"textDecoration": "line-through"},
    "no-underline": {"textDecoration": "none"},
    "whitespace-nowrap": {"whiteSpace": "nowrap"},
    "whitespace-pre-wrap": {"whiteSpace": "pre-wrap"},
    "truncate": {"overflow": "hidden", "textOverflow": "ellipsis", "whiteSpace": "nowrap"},
    "font-sans": {"fontFamily": "ui-sans-serif, system-ui, sans-serif"},
    "font-serif": {"fontFamily": "ui-serif, Georgia, serif"},
    "font-mono": {"fontFamily": "ui-monospace, SFMono-Regular, monospace"},
    "leading-none": {"lineHeight": 1},
    "leading-tight": {"lineHeight": 1.25},
    "leading-snug": {"lineHeight": 1.375},
    "leading-normal": {"lineHeight": 1.5},
    "leading-relaxed": {"lineHeight": 1.625},
    "leading-loose": {"lineHeight": 2},
    "tracking-tighter": {"letterSpacing": "-0.05em"},
    "tracking-tight": {"letterSpacing": "-0.025em"},
    "tracking-normal": {"letterSpacing": "0em"},
    "tracking-wide": {"letterSpacing": "0.025em"},
    "tracking-wider": {"letterSpacing": "0.05em"},
    "tracking-widest": {"letterSpacing": "0.1em"},
    # borders
    "border": {"borderWidth": "1px", "borderStyle": "solid"},
    "border-0": {"borderWidth": "0px"},
    "border-2": {"borderWidth": "2px", "borderStyle": "solid"},
    "border-4": {"borderWidth": "4px", "borderStyle": "solid"},
    "border-8": {"borderWidth": "8px", "borderStyle": "solid"},
    "border-t": {"borderTopWidth": "1px", "borderTopStyle": "solid"},
    "border-b": {"borderBottomWidth": "1px", "borderBottomStyle": "solid"},
    "border-dashed": {"borderStyle": "dashed"},
    # overflow and misc
    "overflow-hidden": {"overflow": "hidden"},
    "overflow-auto": {"overflow": "auto"},
    "overflow-scroll": {"overflow": "scroll"},
    "overflow-visible": {"overflow": "visible"},
    "object-cover": {"objectFit": "cover"},
    "object-contain": {"objectFit": "contain"},
    "pointer-events-none": {"pointerEvents": "none"},
    "select-none": {"userSelect": "none"},
    "cursor-pointer": {"cursor": "pointer"},
    "backdrop-blur-sm": {"backdropFilter": "blur(4px)"},
    "backdrop-blur": {"backdropFilter": "blur(8px)"},
    "backdrop-blur-md": {"backdropFilter": "blur(12px)"},
    "backdrop-blur-lg": {"backdropFilter": "blur(16px)"},
    "blur": {"filter": "blur(8px)"},
}

_SPACING_PROPS: dict[str, tuple[str, ...]] = {
    "p": ("padding",),
    "px": ("paddingLeft", "paddingRight"),
    "py": ("paddingTop", "paddingBottom"),
    "pt": ("paddingTop",),
    "pr": ("paddingRight",),
    "pb": ("paddingBottom",),
    "pl": ("paddingLeft",),
    "m": ("margin",),
    "mx": ("marginLeft", "marginRight"),
    "my": ("marginTop", "marginBottom"),
    "mt": ("marginTop",),
    "mr": ("marginRight",),
    "mb": ("marginBottom",),
    "ml": ("marginLeft",),
    "gap": ("gap",),
    "gap-x": ("columnGap",),
    "gap-y": ("rowGap",),
    "space-x": ("columnGap",),
    "space-y": ("rowGap",),
    "top": ("top",),
    "right": ("right",),
    "bottom": ("bottom",),
    "left": ("left",),
}
_SIZE_PROPS: dict[str, str] = {
    "w": "width",
    "h": "height",
    "min-w": "minWidth",
    "min-h": "minHeight",
    "max-h": "maxHeight",
}
_COLOR_PROPS: dict[str, str] = {
    "text": "color",
    "bg": "backgroundColor",
    "border": "borderColor",
}
_GRADIENT_DIRECTIONS: dict[str, str] = {
    "t": "to top", "tr": "to top right", "r": "to right", "br": "to bottom right",
    "b": "to bottom", "bl": "to bottom left", "l": "to left", "tl": "to top left",
}

_SPACING_TOKEN = re.compile(r"^(-?)(p[xytrbl]?|m[xytrbl]?|gap(?:-[xy])?|space-[xy]|top|right|bottom|left)-(.+)$")
_SIZE_TOKEN = re.compile(r"^(w|h|min-w|min-h|max-h)-(.+)$")
_COLOR_TOKEN = re.compile(r"^(text|bg|border)-([a-z]+)(?:-(\d{2,3}))?(?:/(\d{1,3}))?$")
_STOP_TOKEN = re.compile(r"^(from|via|to)-([a-z]+)(?:-(\d{2,3}))?(?:/(\d{1,3}))?$")


def color_value(name: str, shade: str | None, alpha: str | None) -> str | None:
    """Hex (or ``rgba`` when an opacity modifier is present) for a palette colour."""
    if shade is None:
        base = NAMED_COLORS.get(name)
    else:
        base = PALETTE.get(name, {}).get(shade)
    if base is None:
        return None
    if alpha is None or not base.startswith("#"):
        return base
    red, green, blue = (int(base[i:i + 2], 16) for i in (1, 3, 5))
    return f"rgba({red}, {green}, {blue}, {int(alpha) / 100:g})"


def resolve_token(token: str) -> StyleMap | None:
    """Style properties for one class token, or None when unknown."""
    if ":" in token or token.startswith("!"):
        return None
    if token in STATIC:
        return dict(STATIC[token])

    if token.startswith("text-") and token[5:] in FONT_SIZES:
        size, leading = FONT_SIZES[token[5:]]
        return {"fontSize": size, "lineHeight": leading}
    if token.startswith("font-") and token[5:] in FONT_WEIGHTS:
        return {"fontWeight": FONT_WEIGHTS[token[5:]]}
    if token == "rounded" or token.startswith("rounded-"):
        radius = RADII.get(token[8:] if token != "rounded" else "")
        return {"borderRadius": radius} if radius is not None else None
    if token == "shadow" or token.startswith("shadow-"):
        shadow = SHADOWS.get(token[7:] if token != "shadow" else "")
        return {"boxShadow": shadow} if shadow is not None else None
    if token.startswith("opacity-") and token[8:].isdigit():
        return {"opacity": int(token[8:]) / 100}
    if token.startswith("z-") and token[2:].isdigit():
        return {"zIndex": int(token[2:])}
    if token.startswith("grid-cols-") and token[10:].isdigit():
        return {"gridTemplateColumns": f"repeat({token[10:]}, minmax(0, 1fr))"}
    if token.startswith("col-span-") and token[9:].isdigit():
        return {"gridColumn": f"span {token[9:]} / span {token[9:]}"}
    if token.startswith("max-w-") and token[6:] in MAX_WIDTHS:
        return {"maxWidth": MAX_WIDTHS[token[6:]]}

    match = _SPACING_TOKEN.match(token)
    if match:
        negative, prefix, step = match.groups()
        value = SPACING.get(step)
        if value is None and step in FRACTIONS and prefix in ("top", "right", "bottom", "left"):
            value = FRACTIONS[step]
        if value is None:
            return None
        if negative and value != "0px":
            value = f"-{value}"
        return {prop: value for prop in _SPACING_PROPS[prefix]}

    match = _SIZE_TOKEN.match(token)
    if match:
        prefix, step = match.groups()
        value = SPACING.get(step) or FRACTIONS.get(step)
        return {_SIZE_PROPS[prefix]: value} if value is not None else None

    match = _COLOR_TOKEN.match(token)
    if match:
        prefix, name, shade, alpha = match.groups()
        color = color_value(name, shade, alpha)
        return {_COLOR_PROPS[prefix]: color} if color is not None else None
    return None


def resolve_classes(tokens: list[str]) -> tuple[StyleMap, list[str]]:
    """Resolve a whole ``className``; gradient stops combine across tokens.

    Later tokens override earlier ones for the same property. Returns the
    merged style map and the tokens left unresolved, in source order.
    """
    styles: StyleMap = {}
    unresolved: list[str] = []
    direction: str | None = None
    stops: dict[str, str] = {}
    stop_tokens: list[str] = []
    for token in tokens:
        if token.startswith("bg-gradient-to-") and token[15:] in _GRADIENT_DIRECTIONS:
            direction = _GRADIENT_DIRECTIONS[token[15:]]
            continue
        stop = _STOP_TOKEN.match(token)
        if stop:
            position, name, shade, alpha = stop.groups()
            color = color_value(name, shade, alpha)
            if color is not None:
                stops[position] = color
                stop_tokens.append(token)
                continue
        resolved = resolve_token(token)
        if resolved is None:
            unresolved.append(token)
        else:
            styles.update(resolved)
    if direction is not None and "from" in stops:
        colors = [stops["from"]]
        if "via" in stops:
            colors.append(stops["via"])
        colors.append(stops.get("to", "transparent"))
        styles["backgroundImage"] = f"linear-gradient({direction}, {', '.join(colors)})"
    elif direction is not None:
        unresolved.append(f"bg-gradient-to-{next(k for k, v in _GRADIENT_DIRECTIONS.items() if v == direction)}")
        unresolved.extend(stop_tokens)
    else:
        unresolved.extend(stop_tokens)
    return styles, unresolved


FULL_SCREEN_SETS: tuple[frozenset[str], ...] = (
    frozenset({"w-full", "h-screen"}),
    frozenset({"w-screen", "h-screen"}),
    frozenset({"w-full", "h-full"}),
    frozenset({"min-h-screen"}),
    frozenset({"inset-0", "absolute"}),
    frozenset({"inset-0", "fixed"}),
)


def is_full_screen(tokens: list[str]) -> bool:
    present = set(tokens)
    return any(group <= present for group in FULL_SCREEN_SETS)
