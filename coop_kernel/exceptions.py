"""
Typed Exception Hierarchy for the Cooperative Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the CLI, an editing UI, the year service) decide how to present a
failure. They must be able to do that without parsing message strings, so:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.create_year("2025-2026")
    except FinancialYearExistsError as e:
        show_error(f"{e.label} already exists")   # Structured data
    except StateConflictError as e:
        show_error(e.code)                          # Machine-readable

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CoopLedgerError (base)
    |
    +-- RecordValidationError
    |   +-- InvalidAmountError
    |   +-- MissingFieldError
    |   +-- IncompleteClosureError
    |   +-- InvalidMonthIndexError
    |   +-- InvalidFinancialYearLabelError
    |
    +-- MemberReferenceError
    |   +-- MemberNotFoundError
    |
    +-- RecordNotFoundError
    |
    +-- StateConflictError
    |   +-- FinancialYearExistsError
    |   +-- SourceYearMissingError
    |
    +-- FormatError
    |   +-- InvalidDatasetFormatError
    |
    +-- StorageError
    |   +-- DatasetNotFoundError
    |   +-- DatasetWriteError
    |
    +-- ConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_AMOUNT              | Amount missing, non-numeric or <= 0
                | MISSING_FIELD               | Required date / mode / name missing
                | INCOMPLETE_CLOSURE          | Closed instrument without close fields
                | INVALID_MONTH_INDEX         | Month index outside 0..11
                | INVALID_FINANCIAL_YEAR      | Label is not "<start>-<start+1>"
----------------|-----------------------------|-----------------------------------------
Reference       | MEMBER_NOT_FOUND            | Edit references a missing member
                | RECORD_NOT_FOUND            | Loan / deposit id does not exist
----------------|-----------------------------|-----------------------------------------
State           | FINANCIAL_YEAR_EXISTS       | Creating a year that already exists
                | SOURCE_YEAR_MISSING         | Rollover source year cannot be loaded
----------------|-----------------------------|-----------------------------------------
Format          | INVALID_DATASET_FORMAT      | Import document malformed
----------------|-----------------------------|-----------------------------------------
Storage         | DATASET_NOT_FOUND           | No dataset stored for the year label
                | DATASET_WRITE_FAILED        | Store could not persist the dataset
----------------|-----------------------------|-----------------------------------------
Config          | CONFIG_ERROR                | Rate policy file invalid

The calculator never raises MemberReferenceError: records pointing at a
deleted member are skipped there. Only the editing layer rejects them.
"""


class CoopLedgerError(Exception):
    """
    Base exception for all cooperative ledger errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "COOP_LEDGER_ERROR"


# Validation exceptions


class RecordValidationError(CoopLedgerError):
    """Base exception for record validation failures."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(RecordValidationError):
    """Amount is missing, not a number, or not strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Invalid amount for {field}: {value!r}")


class MissingFieldError(RecordValidationError):
    """A required field was not provided."""

    code: str = "MISSING_FIELD"

    def __init__(self, record_type: str, field: str):
        self.record_type = record_type
        self.field = field
        super().__init__(f"{record_type} requires {field}")


class IncompleteClosureError(RecordValidationError):
    """
    A closed loan or deposit lacks its close date or settlement mode.

    Closed instruments must carry both fields; active ones carry neither.
    """

    code: str = "INCOMPLETE_CLOSURE"

    def __init__(self, record_type: str, record_id: str, missing: str):
        self.record_type = record_type
        self.record_id = record_id
        self.missing = missing
        super().__init__(
            f"Closed {record_type} {record_id} is missing {missing}"
        )


class InvalidMonthIndexError(RecordValidationError):
    """Month index is outside the 0..11 financial-year slot range."""

    code: str = "INVALID_MONTH_INDEX"

    def __init__(self, month_index: object):
        self.month_index = month_index
        super().__init__(f"Month index must be 0..11, got {month_index!r}")


class InvalidFinancialYearLabelError(RecordValidationError):
    """Financial-year label is not of the form '<start>-<start+1>'."""

    code: str = "INVALID_FINANCIAL_YEAR"

    def __init__(self, label: object):
        self.label = label
        super().__init__(f"Invalid financial year label: {label!r}")


# Reference exceptions


class MemberReferenceError(CoopLedgerError):
    """Base exception for dangling member references."""

    code: str = "MEMBER_REFERENCE_ERROR"


class MemberNotFoundError(MemberReferenceError):
    """Member with given ID does not exist in the dataset."""

    code: str = "MEMBER_NOT_FOUND"

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


class RecordNotFoundError(CoopLedgerError):
    """Loan or fixed deposit with given ID does not exist."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, record_type: str, record_id: str):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"{record_type} not found: {record_id}")


# State conflicts


class StateConflictError(CoopLedgerError):
    """Base exception for operations rejected by the year state."""

    code: str = "STATE_CONFLICT"


class FinancialYearExistsError(StateConflictError):
    """Attempt to create a financial year that already exists."""

    code: str = "FINANCIAL_YEAR_EXISTS"

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Financial year already exists: {label}")


class SourceYearMissingError(StateConflictError):
    """Rollover source year could not be loaded."""

    code: str = "SOURCE_YEAR_MISSING"

    def __init__(self, previous_label: str, new_label: str):
        self.previous_label = previous_label
        self.new_label = new_label
        super().__init__(
            f"Cannot create {new_label}: no data stored for {previous_label}"
        )


# Format exceptions


class FormatError(CoopLedgerError):
    """Base exception for malformed interchange documents."""

    code: str = "FORMAT_ERROR"


class InvalidDatasetFormatError(FormatError):
    """Import document is not valid JSON or lacks required sections."""

    code: str = "INVALID_DATASET_FORMAT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid data file format: {reason}")


# Storage exceptions


class StorageError(CoopLedgerError):
    """Base exception for dataset store failures."""

    code: str = "STORAGE_ERROR"


class DatasetNotFoundError(StorageError):
    """No dataset is stored under the given year label."""

    code: str = "DATASET_NOT_FOUND"

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"No dataset stored for financial year {label}")


class DatasetWriteError(StorageError):
    """The store failed to persist a dataset."""

    code: str = "DATASET_WRITE_FAILED"

    def __init__(self, label: str, reason: str):
        self.label = label
        self.reason = reason
        super().__init__(f"Could not save financial year {label}: {reason}")


# Configuration


class ConfigError(CoopLedgerError):
    """Rate policy configuration is invalid."""

    code: str = "CONFIG_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
