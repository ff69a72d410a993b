"""Format validators usable from any service action.

Each ``as_*`` check returns True on success. On failure it raises
InvalidData, unless the Validator was built with ``throws=False``, in which
case it returns False. Wherever a ``regex`` argument is accepted, a custom
pattern replaces the built-in rule entirely.

Example:
    validator = Validator()
    validator.as_email(data["email"])
    validator.as_international_phone(data["phone"], "+254")
"""

import ipaddress
import re
from collections.abc import Iterable
from typing import Any

from pydantic import AnyUrl, TypeAdapter, ValidationError

from core.exceptions import InvalidData

_url_adapter = TypeAdapter(AnyUrl)

URL_SCHEMES = frozenset({"http", "https", "ftp"})


class Validator:
    email_pattern = r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$"
    phone_pattern = r"^[+](?:[0-9\-()/.]\s?){6,15}[0-9]$"
    password_pattern = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*(_|[^\w])).+$"
    ip_pattern = r"^(\d{1,3}\.){3}\d{1,3}$"
    slug_pattern = r"^[a-z0-9-]+$"
    mac_pattern = (
        r"^(?:[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}"
        r"|[0-9A-Fa-f]{4}\.[0-9A-Fa-f]{4}\.[0-9A-Fa-f]{4})$"
    )
    domain_label_pattern = r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$"
    numeric_pattern = r"^-?[0-9]*\.?[0-9]+$"
    numeric_int_pattern = r"^-?[0-9]+$"

    def __init__(self, throws: bool = True):
        self.throws = throws

    def _fail(self, message: str) -> bool:
        if self.throws:
            raise InvalidData(message)
        return False

    def _check(self, passed: bool, message: str) -> bool:
        return True if passed else self._fail(message)

    def validate(
        self, regex: str, value: Any, message: str | None = "Invalid data"
    ) -> bool:
        """Match ``value`` against any regular expression."""
        if value is None or isinstance(value, (list, dict, tuple, set)):
            return self._fail(message or "Invalid data")
        return self._check(re.search(regex, str(value)) is not None, message or "Invalid data")

    def as_email(self, email: Any, regex: str | None = None) -> bool:
        return self.validate(regex or self.email_pattern, email, "Invalid email address")

    def as_international_phone(
        self, phone: Any, code: str | None = None, regex: str | None = None
    ) -> bool:
        """Without ``code`` any international format passes; with it the number must start with the code."""
        if code and not str(phone).startswith(code):
            return self._fail(f"Invalid phone number, must start with {code}")
        return self.validate(regex or self.phone_pattern, phone, "Invalid phone number")

    def as_password(self, password: Any, regex: str | None = None) -> bool:
        """At least one lowercase, one uppercase, one digit and one special character."""
        return self.validate(regex or self.password_pattern, password, "Weak password")

    def as_number(self, number: Any) -> bool:
        """Actual int or float values only; numeric strings do not count."""
        passed = isinstance(number, (int, float)) and not isinstance(number, bool)
        return self._check(passed, "Invalid number")

    def as_numeric(self, number: Any) -> bool:
        """Numbers or strings that look like one."""
        if isinstance(number, bool):
            return self._fail("Invalid numeric")
        if isinstance(number, (int, float)):
            return True
        return self._check(
            isinstance(number, str) and re.match(self.numeric_pattern, number) is not None,
            "Invalid numeric",
        )

    def as_numeric_int(self, number: Any) -> bool:
        if isinstance(number, bool):
            return self._fail("Invalid numeric integer")
        if isinstance(number, int):
            return True
        return self._check(
            isinstance(number, str)
            and re.match(self.numeric_int_pattern, number) is not None,
            "Invalid numeric integer",
        )

    def as_url(self, url: Any, regex: str | None = None) -> bool:
        if regex:
            return self.validate(regex, url, "Invalid URL")
        try:
            parsed = _url_adapter.validate_python(url)
        except ValidationError:
            return self._fail("Invalid URL")
        return self._check(
            parsed.scheme in URL_SCHEMES and bool(parsed.host), "Invalid URL"
        )

    def as_ip(self, ip: Any, regex: str | None = None) -> bool:
        if regex:
            return self.validate(regex, ip, "Invalid IP address")
        try:
            ipaddress.ip_address(str(ip))
        except ValueError:
            return self._fail("Invalid IP address")
        return True

    def as_mac(self, mac: Any, regex: str | None = None) -> bool:
        return self.validate(regex or self.mac_pattern, mac, "Invalid MAC address")

    def as_domain(self, domain: Any, regex: str | None = None) -> bool:
        if regex:
            return self.validate(regex, domain, "Invalid domain")
        if not isinstance(domain, str) or not domain or len(domain) > 253:
            return self._fail("Invalid domain")
        labels = domain.rstrip(".").split(".")
        passed = all(re.match(self.domain_label_pattern, label) for label in labels)
        return self._check(passed, "Invalid domain")

    def as_slug(self, slug: Any, regex: str | None = None) -> bool:
        """``my-first-post`` passes, ``my first/post%`` does not."""
        return self.validate(regex or self.slug_pattern, slug, "Invalid slug")

    def should_be(self, value: Any, expected: type | tuple[type, ...]) -> bool:
        return self._check(isinstance(value, expected), "Invalid data")

    def all_should_be(
        self, values: Iterable[Any], expected: type | tuple[type, ...]
    ) -> bool:
        return self._check(
            all(isinstance(value, expected) for value in values), "Invalid data"
        )
