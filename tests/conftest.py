from typing import Dict

import pytest

from faceid.domain.models import Landmark

from helpers import candidate_landmarks, make_landmark


@pytest.fixture
def probe_landmark() -> Landmark:
    return make_landmark()


@pytest.fixture
def candidate_faces() -> Dict[bytes, Landmark]:
    """Five samples; only item2 matches the probe"""
    return candidate_landmarks()
