"""Parsing and evaluation of equality based label selectors."""

from dataclasses import dataclass

from nginx_operator.exceptions import InputException

__all__ = ["LabelRequirement", "parse_selector", "matches"]


@dataclass(frozen=True)
class LabelRequirement:
    """A single `key=value` or `key!=value` requirement."""

    key: str
    value: str
    equals: bool = True

    def matches(self, labels: dict[str, str]) -> bool:
        """Return True if the labels satisfy this requirement."""
        if self.equals:
            return labels.get(self.key) == self.value
        return labels.get(self.key) != self.value


def parse_selector(selector: str | None) -> list[LabelRequirement]:
    """Parse a selector string such as `app=nginx,nginx_cr=my-nginx`.

    An empty selector matches everything.
    """
    requirements: list[LabelRequirement] = []
    if not selector:
        return requirements
    for term in selector.split(","):
        if not (term := term.strip()):
            continue
        if "!=" in term:
            key, value = term.split("!=", 1)
            equals = False
        elif "==" in term:
            key, value = term.split("==", 1)
            equals = True
        elif "=" in term:
            key, value = term.split("=", 1)
            equals = True
        else:
            raise InputException(f"Unsupported label selector term '{term}'")
        if not (key := key.strip()):
            raise InputException(f"Label selector term missing key: '{term}'")
        requirements.append(LabelRequirement(key, value.strip(), equals))
    return requirements


def matches(requirements: list[LabelRequirement], labels: dict[str, str]) -> bool:
    """Return True if the labels satisfy all requirements."""
    return all(req.matches(labels) for req in requirements)
