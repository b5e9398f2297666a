from typing import Any, Dict

import pytest

from authkeys.tests.sample_keys import EXAMPLE_KEY


@pytest.fixture(autouse=True)
def doctest_add_example_key(doctest_namespace):
    # type: (Dict[str, Any]) -> None
    # Provide a custom namespace for doctests so that the examples can use a
    # realistic key without spelling it out.  Use sparingly.
    # - For this to work, the doctests MUST NOT import the names listed here
    #   (as the import would overwrite them)
    doctest_namespace['EXAMPLE_KEY'] = EXAMPLE_KEY
