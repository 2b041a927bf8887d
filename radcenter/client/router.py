"""
Role-based router and navigation guard.
"""
from typing import TYPE_CHECKING, Optional
import logging

from ..core.permissions import Page

if TYPE_CHECKING:
    from .context import AppContext

logger = logging.getLogger(__name__)


class Router:
    """
    Opens pages for the session user.

    With no session the login screen is shown instead. A page the role may
    not open is replaced by the role's landing page; when that landing page
    is itself refused (or is the page just refused) nothing is rendered, so
    a redirect can never loop.
    """

    def __init__(self, ctx: "AppContext"):
        self.ctx = ctx

    def navigate(self, page) -> Optional[Page]:
        """
        Render a page, or the page the guard sends the user to.

        Args:
            page: Page enum or name; None re-opens the landing page

        Returns:
            Page: The page rendered, or None if the login screen was shown
                or access was refused outright
        """
        ctx = self.ctx
        user = ctx.state.user
        if not user:
            ctx.auth.show_login()
            return None

        role = user.get("role")
        try:
            requested = Page(page) if page else ctx.policy.default_page(role)
        except ValueError:
            requested = ctx.policy.default_page(role)

        if not ctx.policy.can_access(role, requested):
            fallback = ctx.policy.default_page(role)
            if fallback == requested or not ctx.policy.can_access(role, fallback):
                logger.warning(f"Access denied: role {role} has no page to open")
                ctx.auth.show_login()
                return None
            logger.warning(f"Access denied to {requested.value} for role {role}, redirecting to {fallback.value}")
            requested = fallback

        ctx.state.current_view = requested.value
        ctx.views[requested].render()
        return requested

    def refresh(self) -> Optional[Page]:
        """Re-render the current page."""
        return self.navigate(self.ctx.state.current_view)
