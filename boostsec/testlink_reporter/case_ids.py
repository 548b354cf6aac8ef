"""Extract TestLink case ids from test and suite titles."""

import re

CASE_ID_PATTERN = re.compile(r"\[(\w+-\d+)\]")


def title_to_case_ids(title: str) -> list[str]:
    """Extract TestLink ids of the form [XPJ-112] from a title.

    A single title may mention several ids; they are returned in order of
    appearance, duplicates included, without the brackets.

    Args:
        title: Test or suite title

    Returns:
        List of case ids, empty when the title mentions none

    """
    return CASE_ID_PATTERN.findall(title)
