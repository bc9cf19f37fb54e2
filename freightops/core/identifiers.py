"""
SCAC-style company identifiers and HQ employee numbers.

A Standard Carrier Alpha Code is 2-4 characters. Generated codes end in a letter
that encodes the carrier's business type and avoid characters that are easy to
confuse (I, O, 0, 1) as well as a list of reserved words and agency acronyms.
"""
import random
from typing import Callable, Iterable, List, Optional
from freightops.core.exceptions import IdentifierGenerationError
from freightops.schemas.tenant import BusinessType

MAX_ATTEMPTS = 100

VALID_CHARACTERS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

BUSINESS_TYPE_ENDINGS = {
    BusinessType.MOTOR_CARRIER: "M",
    BusinessType.RAIL_CARRIER: "R",
    BusinessType.OCEAN_CARRIER: "O",
    BusinessType.AIR_CARRIER: "A",
    BusinessType.FREIGHT_FORWARDER: "F",
    BusinessType.LOGISTICS_PROVIDER: "L",
    BusinessType.INTERMODAL: "I",
    BusinessType.GENERAL: "G",
}

RESERVED_CODES = {
    "ZZZ", "MIL", "USA", "DOT", "EPA", "FDA", "TSA", "CBP", "ICE", "DHS",
    "FBI", "CIA", "NSA", "DEA", "ATF", "IRS", "SEC", "FTC", "FCC", "OSHA",
    "NULL", "VOID", "TEST", "DEMO", "TEMP", "FAKE", "MOCK", "XXXX",
}

# Share of attempts that try the company's initials before falling back to random
INITIALS_PROBABILITY = 0.7


def extract_initials(company_name: str) -> str:
    words = company_name.upper().split()
    return "".join(w[0] for w in words if w[0] in VALID_CHARACTERS)


def generate_scac(company_name: str, business_type: BusinessType = BusinessType.MOTOR_CARRIER,
                  length: int = 4, rng: Optional[random.Random] = None) -> str:
    """Produces one candidate code; uniqueness is checked by the caller."""
    if length < 2 or length > 4:
        raise ValueError("SCAC length must be between 2 and 4")
    rng = rng or random.Random()
    ending = BUSINESS_TYPE_ENDINGS[business_type]
    prefix_length = length - 1

    if rng.random() < INITIALS_PROBABILITY:
        initials = extract_initials(company_name)
        if len(initials) >= prefix_length:
            code = initials[:prefix_length] + ending
            if code not in RESERVED_CODES:
                return code

    while True:
        prefix = "".join(rng.choice(VALID_CHARACTERS) for _ in range(prefix_length))
        code = prefix + ending
        if code not in RESERVED_CODES:
            return code


def generate_company_identifier(company_name: str, existing: Iterable[str],
                                business_type: BusinessType = BusinessType.MOTOR_CARRIER,
                                length: int = 4, rng: Optional[random.Random] = None) -> str:
    taken = set(existing)
    rng = rng or random.Random()
    for _ in range(MAX_ATTEMPTS):
        code = generate_scac(company_name, business_type, length, rng)
        if code not in taken:
            return code
    raise IdentifierGenerationError(f"Failed to generate unique company identifier after {MAX_ATTEMPTS} attempts")


def generate_identifier_options(company_name: str, existing: Iterable[str],
                                business_type: BusinessType = BusinessType.MOTOR_CARRIER,
                                count: int = 5, rng: Optional[random.Random] = None) -> List[str]:
    taken = set(existing)
    rng = rng or random.Random()
    options: List[str] = []
    for _ in range(count * 10):
        if len(options) >= count:
            break
        try:
            code = generate_company_identifier(company_name, taken, business_type, 4, rng)
        except IdentifierGenerationError:
            continue
        options.append(code)
        taken.add(code)
    return options


def is_valid_scac(identifier: str) -> bool:
    if len(identifier) < 2 or len(identifier) > 4:
        return False
    if any(c not in VALID_CHARACTERS for c in identifier[:-1]):
        return False
    # Type endings include O and I, which are excluded from the prefix alphabet
    if identifier[-1] not in VALID_CHARACTERS and identifier[-1] not in BUSINESS_TYPE_ENDINGS.values():
        return False
    return identifier not in RESERVED_CODES


def business_type_from_scac(code: str) -> BusinessType:
    if not code or len(code) < 2:
        return BusinessType.GENERAL
    for business_type, ending in BUSINESS_TYPE_ENDINGS.items():
        if code[-1] == ending:
            return business_type
    return BusinessType.GENERAL


def generate_employee_id(exists: Callable[[str], bool], rng: Optional[random.Random] = None) -> str:
    """Six-digit HQ employee number not yet taken according to ``exists``."""
    rng = rng or random.Random()
    for _ in range(MAX_ATTEMPTS):
        candidate = str(rng.randint(100000, 999999))
        if not exists(candidate):
            return candidate
    raise IdentifierGenerationError("Unable to generate unique employee ID after maximum attempts")
