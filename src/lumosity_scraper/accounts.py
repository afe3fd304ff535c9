"""Account Source: loads and validates the accounts to harvest."""

import json
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from .models.accounts import Account
from .resilience import AccountSourceError
from .scraper_logging import get_logger

logger = get_logger(__name__)


def load_accounts(path: Union[str, Path]) -> List[Account]:
    """Load the account list from a JSON array file.

    Validation is all-or-nothing: one bad entry rejects the whole list, so a
    run never starts with a partially valid account source.

    Raises:
        AccountSourceError: file missing or unreadable, invalid JSON, not an
            array, empty, or any entry missing identity, secret or cohort label
    """
    path = Path(path)
    logger.info("Loading accounts", path=str(path))

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise AccountSourceError(f"Failed to load {path}: file not found") from e
    except OSError as e:
        raise AccountSourceError(f"Failed to load {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise AccountSourceError(f"Failed to load {path}: invalid JSON ({e})") from e

    if not isinstance(raw, list):
        raise AccountSourceError(f"{path} must contain a JSON array of accounts")
    if not raw:
        raise AccountSourceError("No accounts found")

    accounts = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise AccountSourceError(f"Account #{index} is not an object")
        try:
            accounts.append(Account.model_validate(entry))
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            logger.error("Invalid account entry", index=index, fields=fields)
            raise AccountSourceError(
                "Each account must include identity, secret, and cohort label "
                f"(entry #{index}: {', '.join(fields) or 'invalid'})"
            ) from e

    logger.info("Accounts validated", count=len(accounts))
    return accounts
