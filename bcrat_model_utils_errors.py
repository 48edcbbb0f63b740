"""
Error types and error message utilities for the BCRAT model.

Validation problems are reported as message lists on the result objects;
the exception classes here cover calculation faults and table lookup gaps,
and give each failure a JSON-compatible representation.
"""

from typing import Dict, List, Optional
import traceback
import logging

logger = logging.getLogger(__name__)


class BCRATError(Exception):
    """Base class for BCRAT model errors."""

    def to_dict(self) -> Dict:
        return {
            'type': type(self).__name__,
            'message': str(self),
        }


class BCRATValidationError(BCRATError):
    """
    Risk factor data failed validation.

    Args:
        message: Error message
        field_errors: Mapping of field name to message(s)
    """

    def __init__(self, message: str, field_errors: Optional[Dict] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result['field_errors'] = self.field_errors
        return result


class BCRATCalculationError(BCRATError):
    """Risk calculation failed on otherwise valid input."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result['details'] = self.details
        return result


class BCRATLookupError(BCRATError):
    """A race code has no model tables."""

    def __init__(self, message: str, race=None):
        super().__init__(message)
        self.race = race

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result['race'] = self.race
        return result


def describe_exception(error: Exception) -> Dict:
    """Structured description of an unexpected exception."""
    if isinstance(error, BCRATError):
        details = error.to_dict()
    else:
        details = {'type': type(error).__name__, 'message': str(error) or 'Unknown error'}
    details['stack'] = ''.join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
    return details


def format_validation_errors(errors: List[str]) -> str:
    """
    Format validation errors as a numbered list.

    Args:
        errors: Error messages

    Returns:
        One numbered line per error, or 'No errors'
    """
    if not errors:
        return 'No errors'
    return '\n'.join(f"{i}. {error}" for i, error in enumerate(errors, start=1))


USER_FRIENDLY_MESSAGES = {
    # Ages
    'Initial age must be between 20 and 89 years':
        'Age must be between 20 and 89 years for risk calculation.',
    'Projection end age must be 90 years or less':
        'The future age cannot be greater than 90.',
    'Projection end age must be greater than initial age':
        'The future age must be greater than the current age.',

    # Race
    'Invalid race code. Must be between 1 and 11':
        'Please select a valid race/ethnicity option.',

    # Temporal relationships
    'Age at menarche cannot be greater than initial age':
        'Age at first menstrual period cannot be greater than current age.',
    'Age at first birth cannot be less than age at menarche':
        'Age at first birth must be after age at first menstrual period.',
    'Age at first birth cannot be greater than initial age':
        'Age at first birth cannot be greater than current age.',

    # Biopsy / hyperplasia consistency
    'Consistency error: If no biopsies, atypical hyperplasia must be not applicable (99)':
        'If you have not had breast biopsies, please select "Unknown/Not Applicable" '
        'for atypical hyperplasia.',
    'Consistency error: If biopsies performed, atypical hyperplasia must be 0, 1, or 99':
        'Please indicate whether atypical hyperplasia was found in your biopsy.',

    # Structural problems
    'is required': 'Please fill in all required fields.',
    'must be a finite number': 'Please enter a valid number.',
    'must be a number': 'Please enter a valid number.',
}


def create_user_friendly_error(error: str) -> str:
    """
    Map a technical error message to end-user wording.

    Exact matches win; otherwise the first known message contained in the
    error is used. Unknown messages are returned unchanged.
    """
    if error in USER_FRIENDLY_MESSAGES:
        return USER_FRIENDLY_MESSAGES[error]

    for technical, friendly in USER_FRIENDLY_MESSAGES.items():
        if technical in error:
            return friendly

    return error


def create_user_friendly_errors(errors: List[str]) -> List[str]:
    """Map each technical message through create_user_friendly_error."""
    if not isinstance(errors, (list, tuple)):
        return []
    return [create_user_friendly_error(error) for error in errors]
