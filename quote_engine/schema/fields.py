"""Field definitions that make up the unified quote schema."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

from quote_engine.core.types import FieldPayload

FIELD_TYPES = (
    "text",
    "email",
    "tel",
    "date",
    "select",
    "radio",
    "checkbox",
    "number",
    "boolean",
    "array",
)

YES_NO = ("Yes", "No")


@dataclass(frozen=True)
class Validation:
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def as_payload(self) -> Dict[str, Any]:
        payload = {
            "pattern": self.pattern,
            "minLength": self.min_length,
            "maxLength": self.max_length,
            "min": self.min,
            "max": self.max,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass(frozen=True)
class FieldDefinition:
    """Describes one piece of user data a carrier may ask for."""

    id: str
    name: str
    type: str = "text"
    required: bool = False
    options: Tuple[str, ...] = ()
    placeholder: Optional[str] = None
    validation: Optional[Validation] = None
    item_fields: Tuple["FieldDefinition", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unsupported field type '{self.type}' for {self.id}")

    def as_payload(self) -> FieldPayload:
        payload: FieldPayload = {"id": self.id, "name": self.name, "type": self.type, "required": self.required}
        if self.options:
            payload["options"] = list(self.options)
        if self.placeholder:
            payload["placeholder"] = self.placeholder
        if self.validation:
            payload["validation"] = self.validation.as_payload()
        if self.item_fields:
            payload["itemFields"] = {item.id: item.as_payload() for item in self.item_fields}
        return payload


def _index(*definitions: FieldDefinition) -> Dict[str, FieldDefinition]:
    return {definition.id: definition for definition in definitions}


def vehicle_year_options(today: date | None = None) -> Tuple[str, ...]:
    current = (today or date.today()).year
    return tuple(str(year) for year in range(current + 1, 1989, -1))


STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN", "IA", "KS", "KY",
    "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ", "NM", "NY", "NC", "ND",
    "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)

VEHICLE_MAKES = (
    "Acura", "Audi", "BMW", "Buick", "Cadillac", "Chevrolet", "Chrysler", "Dodge", "Ford", "GMC",
    "Honda", "Hyundai", "Infiniti", "Jeep", "Kia", "Lexus", "Lincoln", "Mazda", "Mercedes-Benz",
    "Mitsubishi", "Nissan", "Pontiac", "Porsche", "Ram", "Subaru", "Toyota", "Volkswagen", "Volvo",
)

PERSONAL_INFO = _index(
    FieldDefinition("firstName", "First Name", "text", True, placeholder="Enter your first name",
                    validation=Validation(min_length=1, max_length=50)),
    FieldDefinition("middleInitial", "Middle Initial", "text", False, placeholder="M",
                    validation=Validation(max_length=1)),
    FieldDefinition("lastName", "Last Name", "text", True, placeholder="Enter your last name",
                    validation=Validation(min_length=1, max_length=50)),
    FieldDefinition("suffix", "Suffix", "select", False, options=("Jr.", "Sr.", "II", "III", "IV")),
    FieldDefinition("dateOfBirth", "Date of Birth", "date", True, placeholder="MM/DD/YYYY"),
    FieldDefinition("gender", "Gender", "select", True, options=("Male", "Female", "Non-binary", "Prefer not to say")),
    FieldDefinition("maritalStatus", "Marital Status", "select", True,
                    options=("Single", "Married", "Civil Union", "Divorced", "Widowed", "Separated")),
    FieldDefinition("email", "Email Address", "email", True, placeholder="your.email@gmail.com",
                    validation=Validation(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")),
    FieldDefinition("phone", "Phone Number", "tel", True, placeholder="(555) 123-4567",
                    validation=Validation(pattern=r"^\(?([0-9]{3})\)?[-. ]?([0-9]{3})[-. ]?([0-9]{4})$")),
)

ADDRESS = _index(
    FieldDefinition("streetAddress", "Street Address", "text", True, placeholder="123 Main Street",
                    validation=Validation(min_length=5, max_length=100)),
    FieldDefinition("apt", "Apartment/Unit #", "text", False, placeholder="Apt 2B", validation=Validation(max_length=20)),
    FieldDefinition("city", "City", "text", True, placeholder="Your city", validation=Validation(min_length=1, max_length=50)),
    FieldDefinition("state", "State", "select", True, options=STATES),
    FieldDefinition("zipCode", "ZIP Code", "text", True, placeholder="12345",
                    validation=Validation(pattern=r"^[0-9]{5}$", min_length=5, max_length=5)),
    FieldDefinition("housingType", "Housing Type", "select", True,
                    options=("Own house", "Rent house", "Apartment", "Condo", "Mobile home", "Other")),
    FieldDefinition("residenceDuration", "How long have you lived at this address?", "select", True,
                    options=("Less than 3 months", "3-6 months", "6 months - 1 year", "1-3 years", "More than 3 years")),
)

_VEHICLE_ITEM = (
    FieldDefinition("vehicleYear", "Vehicle Year", "select", True, options=vehicle_year_options()),
    FieldDefinition("vehicleMake", "Vehicle Make", "select", True, options=VEHICLE_MAKES),
    FieldDefinition("vehicleModel", "Vehicle Model", "text", True, placeholder="e.g., Camry, Accord, F-150"),
)

VEHICLE = _index(
    *_VEHICLE_ITEM,
    FieldDefinition("vehicleTrim", "Vehicle Trim/Body Style", "text", False, placeholder="e.g., LX 4D SED GAS, Sport"),
    FieldDefinition("vehicleVin", "VIN (Vehicle Identification Number)", "text", False,
                    placeholder="17-character VIN (optional)",
                    validation=Validation(pattern=r"^[A-HJ-NPR-Z0-9]{17}$", min_length=17, max_length=17)),
    FieldDefinition("annualMileage", "Annual Mileage", "select", True, options=(
        "Less than 5,000", "5,000 - 7,500", "7,500 - 10,000", "10,000 - 12,500",
        "12,500 - 15,000", "15,000 - 20,000", "20,000 - 25,000", "More than 25,000",
    )),
    FieldDefinition("commuteMiles", "Miles to Work/School (One Way)", "select", True, options=(
        "Work from home", "Less than 5 miles", "5-10 miles", "11-15 miles", "16-25 miles", "26-50 miles",
        "More than 50 miles",
    )),
    FieldDefinition("primaryUse", "Primary Use", "select", True, options=(
        "Pleasure (recreational, errands)", "Commuting to work/school", "Business use", "Farm/Ranch use",
    )),
    FieldDefinition("ownership", "Vehicle Ownership", "select", True,
                    options=("Own (fully paid off)", "Finance (making payments)", "Lease")),
    FieldDefinition("purchaseDate", "When did you acquire this vehicle?", "date", False, placeholder="MM/DD/YYYY"),
    FieldDefinition("antiTheftDevice", "Anti-Theft Device", "radio", True, options=YES_NO),
    FieldDefinition("rideshareUsage", "Rideshare/Delivery Usage", "select", True,
                    options=("No", "Yes, less than 50% of time", "Yes, 50% or more of time")),
    FieldDefinition("trackingDevice", "GPS Tracking Device", "radio", True, options=YES_NO),
    FieldDefinition("vehicles", "Vehicles", "array", False, item_fields=_VEHICLE_ITEM),
)

DRIVING_HISTORY = _index(
    FieldDefinition("licenseAge", "Age When First Licensed", "select", True,
                    options=("14", "15", "16", "17", "18", "19", "20", "21-25", "26-30", "31+")),
    FieldDefinition("yearsLicensed", "Years Licensed", "select", True, options=(
        "Less than 1 year", "1-2 years", "3-5 years", "6-10 years", "11-15 years", "More than 15 years",
    )),
    FieldDefinition("foreignLicense", "Ever had a foreign license?", "radio", True, options=YES_NO),
    FieldDefinition("licenseIssues", "License Issues (last 3 years)", "select", True, options=(
        "No issues", "License suspended", "License revoked", "License surrendered voluntarily",
    )),
    FieldDefinition("accidents", "At-Fault Accidents (Last 5 Years)", "select", True, options=("0", "1", "2", "3", "4+")),
    FieldDefinition("violations", "Moving Violations/Tickets (Last 5 Years)", "select", True,
                    options=("0", "1", "2", "3", "4+")),
    FieldDefinition("majorViolations", "Major Violations (DUI/DWI, Reckless Driving)", "select", True,
                    options=("None", "1", "2", "3+")),
    FieldDefinition("continuousCoverage", "Continuous Insurance Coverage", "select", True, options=(
        "Currently insured (3+ years)", "Currently insured (1-3 years)", "Currently insured (less than 1 year)",
        "Lapsed within 30 days", "Lapsed 31-90 days", "Lapsed more than 90 days", "Never insured",
    )),
    FieldDefinition("currentInsurer", "Current Insurance Company", "text", False,
                    placeholder="Current insurer name (if any)"),
    FieldDefinition("currentLiabilityLimits", "Current Liability Limits", "select", False, options=(
        "State Minimum", "$25,000/$50,000", "$50,000/$100,000", "$100,000/$300,000", "$250,000/$500,000",
        "$500,000/$1,000,000", "I don't know",
    )),
)

DEMOGRAPHICS = _index(
    FieldDefinition("education", "Highest Education Level", "select", True, options=(
        "High school diploma/equivalent", "Vocational school", "Associate degree/some college",
        "Bachelor's degree", "Master's, Ph.D., J.D., etc.", "Other",
    )),
    FieldDefinition("employmentStatus", "Employment Status", "select", True, options=(
        "Employed/Self-employed (full- or part-time)", "Retired", "Student", "Homemaker", "In the military",
        "Not seeking employment", "Unemployed",
    )),
    FieldDefinition("occupation", "Occupation", "text", False, placeholder="e.g., Teacher, Engineer, Manager"),
    FieldDefinition("industry", "Industry", "text", False, placeholder="e.g., Education, Technology, Healthcare"),
    FieldDefinition("militaryAffiliation", "Military/Government Affiliation", "select", False, options=(
        "None", "Active Military", "Military Veteran", "Military Reserves/National Guard",
        "Federal Employee", "State/Local Government Employee",
    )),
)

COVERAGE = _index(
    FieldDefinition("liabilityLimit", "Preferred Liability Coverage", "select", True, options=(
        "State Minimum", "25/50/25 ($25K/$50K/$25K)", "50/100/50 ($50K/$100K/$50K)",
        "100/300/100 ($100K/$300K/$100K)", "250/500/250 ($250K/$500K/$250K)", "500/500/500 ($500K/$500K/$500K)",
    )),
    FieldDefinition("collisionDeductible", "Collision Deductible", "select", True,
                    options=("$250", "$500", "$1,000", "$2,500", "No Coverage")),
    FieldDefinition("comprehensiveDeductible", "Comprehensive Deductible", "select", True,
                    options=("$250", "$500", "$1,000", "$2,500", "No Coverage")),
    FieldDefinition("medicalPayments", "Medical Payments Coverage", "select", True,
                    options=("$1,000", "$2,500", "$5,000", "$10,000", "No Coverage")),
    FieldDefinition("uninsuredMotorist", "Uninsured Motorist Coverage", "select", True,
                    options=("State Minimum", "25/50", "50/100", "100/300", "250/500", "No Coverage")),
    FieldDefinition("rentalCoverage", "Rental Car Coverage", "select", True, options=(
        "No Coverage", "$30/day, $900 max", "$50/day, $1,500 max", "$75/day, $2,250 max",
    )),
    FieldDefinition("roadsideAssistance", "Roadside Assistance", "radio", True, options=YES_NO),
)

CATEGORIES: Mapping[str, Dict[str, FieldDefinition]] = {
    "personal_info": PERSONAL_INFO,
    "address": ADDRESS,
    "vehicle": VEHICLE,
    "driving_history": DRIVING_HISTORY,
    "demographics": DEMOGRAPHICS,
    "coverage": COVERAGE,
}


def _check_unique_ids() -> None:
    seen: Dict[str, str] = {}
    for category, fields in CATEGORIES.items():
        for field_id in fields:
            if field_id in seen:
                raise ValueError(f"Field id '{field_id}' declared in both {seen[field_id]} and {category}")
            seen[field_id] = category


_check_unique_ids()


__all__ = [
    "ADDRESS",
    "CATEGORIES",
    "COVERAGE",
    "DEMOGRAPHICS",
    "DRIVING_HISTORY",
    "FIELD_TYPES",
    "FieldDefinition",
    "PERSONAL_INFO",
    "VEHICLE",
    "Validation",
    "vehicle_year_options",
]
