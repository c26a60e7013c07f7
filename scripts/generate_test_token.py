#!/usr/bin/env python3
"""Generate test JWT tokens for API testing."""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from onboarding.api.deps import issue_smoke_token
from onboarding.core.auth import Role

# Generate owner token
owner_token = issue_smoke_token("owner-test", role=Role.OWNER, email="owner@example.com")
print(f"Owner Token:\n{owner_token}\n")

# Generate member token
member_token = issue_smoke_token("member-test", role=Role.MEMBER)
print(f"Member Token:\n{member_token}")
