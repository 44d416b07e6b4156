"""
Общие фикстуры для unit тестов matching engine.
"""

import pytest

from factories import make_project, make_user


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def project():
    return make_project()
