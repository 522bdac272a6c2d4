"""
Shared constants for the visual overlay editor.

These values are used by both Python (resolver, controller, presentation)
and JavaScript (the injected frame script). Keep them in sync!
"""

# Tag allow-list, grouped by category. Only these tags are eligible targets.
TAG_CATEGORIES = {
    'container': ('div',),
    'text': ('p', 'span', 'label', 'strong', 'em', 'small'),
    'heading': ('h1', 'h2', 'h3', 'h4', 'h5', 'h6'),
    'link': ('a',),
    'button': ('button',),
    'image': ('img',),
    'form-control': ('input', 'textarea', 'select'),
    'list': ('ul', 'ol'),
    'list-item': ('li',),
    'landmark': ('header', 'footer', 'nav', 'main', 'section', 'article', 'aside'),
}

EDITABLE_TAGS = {tag: category for category, tags in TAG_CATEGORIES.items() for tag in tags}

# Narrower sub-list of text-bearing tags that can enter inline text editing
TEXT_EDITABLE_TAGS = frozenset({
    'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'span', 'a', 'button', 'label', 'li',
})

# Targets inside any of these subtrees are never eligible
EXCLUDED_ANCESTORS = ('script', 'style', 'iframe')

# Attribute written onto elements that had no id of their own
IDENTIFIER_ATTR = 'data-element-id'
IDENTIFIER_PREFIX = 'element-'
IDENTIFIER_SUFFIX_LENGTH = 9

# Transient attribute mapping live DOM nodes to mirror nodes (never persisted)
NODE_KEY_ATTR = 'data-ps-node'

# Marks nodes injected by the overlay so the frame script can skip them
OVERLAY_ATTR = 'data-ps-overlay'

# DOM ids of injected nodes
FRAME_SCRIPT_ID = 'pagesmith-frame-script'
HIGHLIGHT_ID = 'pagesmith-highlight'
HANDLES_ID = 'pagesmith-handles'

# Resize handles: corners and edge midpoints, clockwise from top-left
HANDLE_POSITIONS = ('nw', 'n', 'ne', 'e', 'se', 's', 'sw', 'w')
HANDLE_SIZE = 8
MIN_ELEMENT_SIZE = 10

# Duration of the confirmation outline after an APPLY_CHANGES
FLASH_SECONDS = 1.0

# Message envelope tags used on the postMessage transport
FRAME_CHANNEL = 'pagesmith-frame'
HOST_CHANNEL = 'pagesmith-host'

# NiceGUI event name used by the host page relay
FRAME_EVENT = 'pagesmith_frame'

HISTORY_LIMIT = 200
