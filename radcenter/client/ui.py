"""
User interface collaborator.

View controllers talk to the screen only through this interface: blocking
alerts and confirmations, field prompts, the loading indicator, transient
notifications and page rendering. Markup is out of scope; a page is rendered
as the view model object the controller builds.
"""
from typing import Any, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class UserInterface:
    """
    Interface every front end implements.
    """

    def alert(self, message: str) -> None:
        raise NotImplementedError

    def confirm(self, message: str) -> bool:
        raise NotImplementedError

    def prompt(self, label: str, default: str = "") -> Optional[str]:
        raise NotImplementedError

    def show_loading(self, show: bool) -> None:
        raise NotImplementedError

    def notify(self, message: str) -> None:
        raise NotImplementedError

    def render_page(self, page: str, model: Any) -> None:
        raise NotImplementedError

    def show_modal(self, name: str, model: Any) -> None:
        raise NotImplementedError

    def show_login(self, mode: str = "staff", remembered: Optional[dict] = None) -> None:
        raise NotImplementedError

    def print_report(self, model: Any) -> None:
        raise NotImplementedError

    def reload(self) -> None:
        raise NotImplementedError


class HeadlessUI(UserInterface):
    """
    Front end without a screen: messages go to the log, confirmations use a
    fixed answer, prompts take their default. Records what it was asked so
    callers can inspect it.
    """

    def __init__(self, auto_confirm: bool = True):
        self.auto_confirm = auto_confirm
        self.alerts: List[str] = []
        self.notifications: List[str] = []
        self.confirmations: List[str] = []
        self.prompts: List[Tuple[str, str]] = []
        self.loading = False
        self.current_page: Optional[str] = None
        self.current_model: Any = None
        self.login_shown: Optional[Tuple[str, Optional[dict]]] = None
        self.modals: List[Tuple[str, Any]] = []
        self.printed: List[Any] = []
        self.reloads = 0

    def alert(self, message: str) -> None:
        logger.warning(f"Alert: {message}")
        self.alerts.append(message)

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.auto_confirm

    def prompt(self, label: str, default: str = "") -> Optional[str]:
        self.prompts.append((label, default))
        return default

    def show_loading(self, show: bool) -> None:
        self.loading = show

    def notify(self, message: str) -> None:
        logger.info(f"Notice: {message}")
        self.notifications.append(message)

    def render_page(self, page: str, model: Any) -> None:
        self.current_page = page
        self.current_model = model

    def show_modal(self, name: str, model: Any) -> None:
        self.modals.append((name, model))

    def show_login(self, mode: str = "staff", remembered: Optional[dict] = None) -> None:
        self.current_page = "login"
        self.current_model = None
        self.login_shown = (mode, remembered)

    def print_report(self, model: Any) -> None:
        self.printed.append(model)

    def reload(self) -> None:
        self.reloads += 1
