"""Account model for harvesting targets."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StringConstraints
from typing_extensions import Annotated

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Account(BaseModel):
    """One Lumosity login to harvest.

    Accepts ``identity/secret/cohortLabel`` as well as the older
    ``email/password/study`` spelling of accounts.json. The secret is never
    serialized.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    identity: NonBlank = Field(
        ...,
        validation_alias=AliasChoices("identity", "email"),
        description="Login e-mail, unique per account",
    )
    secret: str = Field(
        ...,
        min_length=1,
        exclude=True,
        repr=False,
        validation_alias=AliasChoices("secret", "password"),
    )
    cohort_label: NonBlank = Field(
        ...,
        validation_alias=AliasChoices("cohortLabel", "cohort_label", "study"),
        description="Study/cohort group the account belongs to",
    )
