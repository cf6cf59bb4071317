# Copyright 2025 iGenius S.p.A
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys

DIST_NAME = "near-lambda"


def get_version() -> str:
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        # Running from a source checkout without an installed dist
        pyproject = Path(__file__).resolve().parents[3] / "pyproject.toml"
        if sys.version_info < (3, 11) or not pyproject.is_file():
            return "0.0.0+unknown"
        import tomllib

        data = tomllib.loads(pyproject.read_text())
        return (data.get("project") or {}).get("version", "0.0.0+unknown")
