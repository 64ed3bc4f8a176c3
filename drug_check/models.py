"""
Pydantic request/response models for the Drug Check Service API.

Field names are camelCase to match the JSON the frontend sends.
"""
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ClientInputError


def is_missing(value: Any) -> bool:
    """True for absent or JavaScript-falsy values (None, False, 0, "").

    An empty list counts as present.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and value == 0:
        return True
    return isinstance(value, str) and value == ""


class RequestModel(BaseModel):
    """Base for request bodies: checks required fields, then types."""

    model_config = ConfigDict(extra="ignore")

    required_fields: ClassVar[tuple[str, ...]] = ()
    missing_message: ClassVar[str] = "必要な情報が不足しています。"

    @classmethod
    def from_payload(cls, payload: Any) -> "RequestModel":
        """Validate a raw JSON body.

        A body that is not a JSON object has no fields, so it fails the
        required-field check like an empty one.

        Raises:
            ClientInputError: a required field is missing or has the wrong type
        """
        if not isinstance(payload, dict):
            payload = {}
        if any(is_missing(payload.get(name)) for name in cls.required_fields):
            raise ClientInputError(cls.missing_message)
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ClientInputError(cls.missing_message) from e


# --- Identification ---

class IdentifyRequest(RequestModel):
    required_fields: ClassVar[tuple[str, ...]] = ("imageData", "mimeType")
    missing_message: ClassVar[str] = "画像データとMIMEタイプが必要です。"

    imageData: Optional[str] = None
    mimeType: Optional[str] = None


class IdentifiedDrug(BaseModel):
    name: str
    quantity: str
    message: Optional[str] = None


class IdentifyResponse(BaseModel):
    identifiedDrugs: list[IdentifiedDrug]
    rawResponse: str


# --- Verification ---

class VerifyRequest(RequestModel):
    required_fields: ClassVar[tuple[str, ...]] = (
        "identifiedDrugs",
        "prescriptionImageData",
        "prescriptionMimeType",
        "timing",
    )
    missing_message: ClassVar[str] = "必要な情報が不足しています。"

    identifiedDrugs: Optional[list[Any]] = None
    prescriptionImageData: Optional[str] = None
    prescriptionMimeType: Optional[str] = None
    timing: Optional[str] = None


# --- Drug info ---

class DrugInfoRequest(RequestModel):
    required_fields: ClassVar[tuple[str, ...]] = ("drugName",)
    missing_message: ClassVar[str] = "薬剤名が必要です。"

    drugName: Optional[str] = None


class DrugInfoResponse(BaseModel):
    details: str
