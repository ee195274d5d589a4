"""
Domain entities - Plain dataclasses shared by services and adapters.

Organizations and applications are read-only configuration for this
service; accounts are created once by the signup orchestrator.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime

# Signup item names and rules as configured on an application
ITEM_USERNAME = "Username"
ITEM_ID = "ID"
ITEM_EMAIL = "Email"
ITEM_PHONE = "Phone"
ITEM_DISPLAY_NAME = "Display name"
ITEM_AFFILIATION = "Affiliation"

RULE_NO_VERIFICATION = "No verification"
RULE_INCREMENTAL = "Incremental"
RULE_FIRST_LAST = "First, last"

BUILT_IN_APPLICATION = "app-built-in"


@dataclass(frozen=True)
class SignupItem:
    """Per-application profile field configuration."""

    name: str
    visible: bool = True
    required: bool = False
    prompted: bool = False
    rule: str = ""


@dataclass
class Organization:
    owner: str
    name: str
    display_name: str = ""
    default_avatar: str = ""
    phone_prefix: str = ""
    tags: list[str] = field(default_factory=list)
    master_password: str = ""

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.name}"

    def masked(self) -> "Organization":
        """Copy that is safe to return to clients."""
        return Organization(
            owner=self.owner,
            name=self.name,
            display_name=self.display_name,
            default_avatar=self.default_avatar,
            phone_prefix=self.phone_prefix,
            tags=list(self.tags),
            master_password="***" if self.master_password else "",
        )

    def default_tag(self) -> str:
        """First token of the first tag group, e.g. "staff|guest" -> "staff"."""
        if not self.tags:
            return ""
        return self.tags[0].split("|")[0]


@dataclass
class Application:
    owner: str
    name: str
    organization: str
    enable_signup: bool = True
    homepage_url: str = ""
    signup_items: list[SignupItem] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.name}"

    def get_signup_item(self, name: str) -> SignupItem | None:
        for item in self.signup_items:
            if item.name == name:
                return item
        return None

    def is_signup_item_visible(self, name: str) -> bool:
        item = self.get_signup_item(name)
        return item is not None and item.visible

    def is_signup_item_required(self, name: str) -> bool:
        item = self.get_signup_item(name)
        return item is not None and item.visible and item.required

    def get_signup_item_rule(self, name: str) -> str:
        item = self.get_signup_item(name)
        return item.rule if item is not None else ""

    def has_prompt_page(self) -> bool:
        return any(item.prompted for item in self.signup_items)


@dataclass
class Account:
    owner: str
    name: str
    id: str
    created_time: str
    type: str = "normal-user"
    password: str = ""
    display_name: str = ""
    first_name: str = ""
    last_name: str = ""
    avatar: str = ""
    email: str = ""
    phone: str = ""
    affiliation: str = ""
    id_card: str = ""
    region: str = ""
    tag: str = ""
    address: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    score: int = 0
    karma: int = 0
    is_admin: bool = False
    is_global_admin: bool = False
    is_forbidden: bool = False
    is_deleted: bool = False
    signup_application: str = ""

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self, include_password: bool = False) -> dict:
        data = asdict(self)
        if not include_password:
            data["password"] = ""
        return data


@dataclass(frozen=True)
class VerificationRecord:
    """One issued code bound to a destination."""

    destination: str
    code: str
    created_at: datetime
    expires_at: datetime
    is_used: bool = False


@dataclass(frozen=True)
class CaptchaChallenge:
    captcha_id: str
    answer: str
    expires_at: datetime


@dataclass(frozen=True)
class Record:
    """Audit fact describing a signup; never read back by this service."""

    owner: str
    name: str
    created_time: str
    organization: str
    user: str
    client_ip: str = ""
    method: str = ""
    request_uri: str = ""
    action: str = "signup"


def split_key(key: str) -> tuple[str, str]:
    """Split an "owner/name" identifier, e.g. "admin/built-in"."""
    owner, sep, name = key.partition("/")
    if not sep:
        return "", key
    return owner, name


@dataclass
class SignupForm:
    """Profile fields submitted by either signup protocol."""

    application: str
    organization: str = ""
    username: str = ""
    password: str = ""
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    phone_prefix: str = ""
    affiliation: str = ""
    id_card: str = ""
    region: str = ""
    email_code: str = ""
    phone_code: str = ""
    invitation_code: str = ""
    client_ip: str = ""
    request_uri: str = ""
