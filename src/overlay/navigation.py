"""
Navigation guard for the embedded document.

Installed when edit mode starts and uninstalled by cleanup. While installed
the frame cancels link clicks and form submits and re-pushes history on
popstate; all of it is done with listeners the guard removes again, nothing
in the page's runtime is patched.
"""

import logging
from typing import List, Optional

from bs4 import Tag

logger = logging.getLogger(__name__)


def is_navigational(node: Optional[Tag]) -> bool:
    """Anchors with an href, and anchors/buttons inside a <nav>."""
    if node is None:
        return False
    if node.name == 'a' and node.get('href'):
        return True
    return node.name in ('a', 'button') and node.find_parent('nav') is not None


class NavigationGuard:

    def __init__(self, bridge):
        self._bridge = bridge
        self._installed = False
        self._blocked: List[str] = []

    @property
    def installed(self) -> bool:
        return self._installed

    @property
    def blocked_attempts(self) -> List[str]:
        return list(self._blocked)

    def install(self) -> None:
        if self._installed:
            return
        self._bridge.install_guard()
        self._installed = True

    def uninstall(self) -> None:
        if not self._installed:
            return
        self._bridge.uninstall_guard()
        self._installed = False

    def record_blocked(self, target: str) -> None:
        self._blocked.append(target)
        logger.info(f"Blocked navigation to {target!r} while editing")
