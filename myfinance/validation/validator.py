"""
Two-Stage Validation Pipeline

DESIGN DECISION: Input is validated in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking, required fields, amount format
- Backed by the pydantic models; their errors become ValidationIssues

STAGE 2 - SEMANTIC VALIDATION:
- Future dates beyond the tolerance
- Unusually large amounts
- Reversed meter readings, duplicate billing months

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to review.
"""

from datetime import date, timedelta
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from myfinance.config.settings import AppSettings
from myfinance.ledger.currency import InvalidAmountError, to_decimal
from myfinance.models.records import (
    FinancialRecord,
    FlowKind,
    MeterReading,
    OccupancyStatus,
    RentalBillingRecord,
    RentalUnit,
)
from myfinance.models.validation import ValidationIssue, ValidationResult


OUTFLOW_CATEGORIES = (
    "Housing",
    "Transportation",
    "Food",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Education",
    "Savings",
    "Others",
)

INFLOW_CATEGORIES = (
    "Salary",
    "Business",
    "Investments",
    "Freelance",
    "Others",
)


def _schema_issues(error: ValidationError) -> list[ValidationIssue]:
    """Turn pydantic errors into error-level issues."""
    issues = []
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "record"
        issue_type = "missing" if err["type"] == "missing" else "invalid_value"
        issues.append(ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=f"{field}: {err['msg']}",
            severity="error",
        ))
    return issues


class RecordValidator:
    """
    Validates ledger entries before they are stored.

    Stage 1 parses raw form data into a FinancialRecord.
    Stage 2 runs only when stage 1 produced a record.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or AppSettings()

    def parse(
        self,
        data: dict[str, Any],
        today: Optional[date] = None,
    ) -> tuple[Optional[FinancialRecord], ValidationResult]:
        """
        Build a record from raw input and validate it.

        Returns (record, result). record is None when the schema stage
        failed.
        """
        issues = []
        data = dict(data)

        if "amount" in data:
            try:
                data["amount"] = to_decimal(data["amount"])
            except InvalidAmountError as e:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message=str(e),
                    severity="error",
                    suggested_fix="Enter the amount as a plain number, e.g. 1500.50",
                ))
                data.pop("amount")

        try:
            record = FinancialRecord.model_validate(data)
        except ValidationError as e:
            amount_reported = bool(issues)
            issues.extend(
                issue for issue in _schema_issues(e)
                if not (issue.field == "amount" and amount_reported)
            )
            return None, ValidationResult(issues=issues)

        return record, self.validate(record, today)

    def validate(
        self,
        record: FinancialRecord,
        today: Optional[date] = None,
    ) -> ValidationResult:
        today = today or date.today()
        issues = []

        if record.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        max_future = today + timedelta(days=self._settings.future_date_tolerance_days)
        if record.occurred_on > max_future:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="future_date",
                message=f"Date ({record.occurred_on}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if record.amount > self._settings.max_record_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({record.amount:,.2f} {record.currency.value}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        known = INFLOW_CATEGORIES if record.kind == FlowKind.INFLOW else OUTFLOW_CATEGORIES
        if record.category not in known:
            issues.append(ValidationIssue(
                field="category",
                issue_type="custom_category",
                message=f"'{record.category}' is not one of the standard categories",
                severity="info",
            ))

        return ValidationResult(issues=issues)


class BillingValidator:
    """
    Checks a month's meter readings before a bill is built.

    Reversed readings are reported as warnings whatever the usage policy;
    under the reject policy the calculator will refuse them as well.
    """

    def _check_reading(self, meter: str, reading: MeterReading) -> list[ValidationIssue]:
        issues = []
        if reading.current < reading.previous:
            issues.append(ValidationIssue(
                field=f"{meter}_reading",
                issue_type="reversed_reading",
                message=(
                    f"{meter.capitalize()} reading went backwards "
                    f"({reading.previous} -> {reading.current})"
                ),
                severity="warning",
                suggested_fix="Check for a replaced meter or a typing mistake",
            ))
        elif reading.current == reading.previous:
            issues.append(ValidationIssue(
                field=f"{meter}_reading",
                issue_type="zero_usage",
                message=f"No {meter} was used this month",
                severity="info",
            ))
        return issues

    def validate(
        self,
        unit: RentalUnit,
        billing_month: str,
        electricity: MeterReading,
        water: MeterReading,
        existing_bills: Iterable[RentalBillingRecord] = (),
    ) -> ValidationResult:
        issues = []
        issues.extend(self._check_reading("electricity", electricity))
        issues.extend(self._check_reading("water", water))

        if any(
            b.unit_id == unit.id and b.billing_month == billing_month
            for b in existing_bills
        ):
            issues.append(ValidationIssue(
                field="billing_month",
                issue_type="duplicate_billing_month",
                message=f"{unit.unit_label} already has a bill for {billing_month}",
                severity="warning",
                suggested_fix="Edit the existing bill instead of adding another",
            ))

        if unit.occupancy_status == OccupancyStatus.VACANT:
            issues.append(ValidationIssue(
                field="unit_id",
                issue_type="vacant_unit",
                message=f"{unit.unit_label} is marked vacant",
                severity="warning",
            ))

        return ValidationResult(issues=issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """Plain-language summary of a validation result."""
    if result.is_valid and not result.warnings:
        return "All checks passed."

    lines = []
    if result.has_errors:
        lines.append("Some information is missing or invalid:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   - {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     Tip: {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   - {warning}")

    return "\n".join(lines)
