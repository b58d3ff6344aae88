"""Document checklist service.

Builds the list of documents a client should provide from their stored
intake answers, and counts what has already been uploaded per category.
"""

from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.intake.draft import DOCUMENT_CATEGORIES
from app.models.client import Client
from app.models.dependent import Dependent
from app.models.document import Document
from app.models.enums import DocumentPriority
from app.models.intake import IntakeResponse
from app.schemas.checklist import CategoryProgress, ChecklistResponse, DocumentSuggestion

CATEGORY_LABELS: Dict[str, str] = {
    **DOCUMENT_CATEGORIES,
    "brokerage": "Brokerage Statements",
    "crypto": "Cryptocurrency Records",
    "rental": "Rental Property Records",
    "foreign": "Foreign Income Records",
    "deduction": "Deduction Receipts",
    "business": "Business Records",
    "education": "Education Records",
}

REQUIRED = DocumentPriority.REQUIRED
RECOMMENDED = DocumentPriority.RECOMMENDED
OPTIONAL = DocumentPriority.OPTIONAL

# Answer key -> documents it triggers: (id, name, category, description, priority)
ANSWER_DOCUMENTS = {
    "has_1099_income": [
        ("1099_nec", "1099-NEC Forms", "1099", "Nonemployee compensation (freelance/contractor income)", REQUIRED),
        ("1099_misc", "1099-MISC Forms", "1099", "Miscellaneous income", RECOMMENDED),
    ],
    "has_stock_sales": [
        ("1099_b", "1099-B Forms", "1099", "Proceeds from broker and barter exchange transactions", REQUIRED),
        ("brokerage_statement", "Year-End Brokerage Statement", "brokerage",
         "Consolidated statement showing all investment transactions", REQUIRED),
    ],
    "has_crypto": [
        ("crypto_report", "Cryptocurrency Transaction Report", "crypto",
         "Export from exchange showing all crypto transactions", REQUIRED),
        ("1099_da", "1099-DA Forms (if received)", "1099", "Digital asset transaction statements from exchanges", RECOMMENDED),
    ],
    "has_rental_income": [
        ("rental_income", "Rental Income Records", "rental", "Documentation of all rental income received", REQUIRED),
        ("rental_expenses", "Rental Expense Records", "rental",
         "Receipts and records for property expenses, repairs, maintenance", REQUIRED),
        ("property_tax_statements", "Property Tax Statements", "rental",
         "Annual property tax statements for rental properties", REQUIRED),
    ],
    "has_foreign_income": [
        ("foreign_income", "Foreign Income Documentation", "foreign", "Records of income earned from foreign sources", REQUIRED),
        ("fbar_records", "Foreign Bank Account Records", "foreign",
         "Statements for foreign accounts (needed if total exceeds $10,000)", REQUIRED),
    ],
    "has_mortgage_interest": [
        ("1098_mortgage", "Form 1098 (Mortgage Interest)", "1098", "Mortgage interest statement from lender", REQUIRED),
    ],
    "has_student_loan": [
        ("1098_e", "Form 1098-E (Student Loan Interest)", "1098", "Student loan interest statement", REQUIRED),
    ],
    "has_charitable": [
        ("charitable_receipts", "Charitable Donation Receipts", "deduction",
         "Receipts and acknowledgment letters from charities", REQUIRED),
    ],
    "has_business": [
        ("business_expenses", "Business Expense Records", "business",
         "Receipts and records for business-related expenses", REQUIRED),
        ("mileage_log", "Vehicle Mileage Log", "business", "Log of business miles driven", RECOMMENDED),
        ("home_office", "Home Office Documentation", "business",
         "Square footage calculations, utility bills if claiming home office", OPTIONAL),
    ],
    "has_childcare": [
        ("childcare_receipts", "Childcare Expense Records", "deduction",
         "Receipts and provider tax ID for childcare expenses", REQUIRED),
    ],
    "has_education": [
        ("1098_t", "Form 1098-T (Tuition Statement)", "1098", "Tuition statement from educational institution", REQUIRED),
        ("education_receipts", "Education Expense Receipts", "education",
         "Receipts for books, supplies, and required materials", RECOMMENDED),
    ],
}

ANSWER_REASONS = {
    "has_1099_income": "1099 income",
    "has_stock_sales": "Stock or investment sales",
    "has_crypto": "Cryptocurrency transactions",
    "has_rental_income": "Rental income",
    "has_foreign_income": "Foreign income or accounts",
    "has_mortgage_interest": "Mortgage interest",
    "has_student_loan": "Student loan interest",
    "has_charitable": "Charitable donations",
    "has_business": "Business expenses",
    "has_childcare": "Childcare expenses",
    "has_education": "Education expenses",
}

# Fixed explanations that replace the triggering answer
REASONS = {
    "prior_return": "Helps ensure consistency and may reveal carryover items",
    "crypto_report": "Needed to calculate capital gains/losses on crypto",
    "fbar_records": "May require FBAR filing",
    "medical_receipts": "Only deductible if exceeding 7.5% of AGI",
    "childcare_receipts": "Needed for Child and Dependent Care Credit",
}


def _suggestion(doc_id, name, category, description, priority, reason) -> DocumentSuggestion:
    return DocumentSuggestion(
        id=doc_id,
        name=name,
        category=category,
        description=description,
        priority=priority,
        reason=REASONS.get(doc_id, reason),
    )


def generate_document_suggestions(
    answers: Dict[str, object],
    has_spouse: bool = False,
    dependent_count: int = 0,
) -> List[DocumentSuggestion]:
    """Documents to request, given intake answers keyed by question key.

    Args:
        answers: Stored intake answers (``has_w2_income``, ``w2_employer_count``, ...)
        has_spouse: Whether the client files with a spouse
        dependent_count: Number of dependents claimed

    Returns:
        Suggestions, always starting with photo ID and the prior year return
    """
    suggestions = [
        _suggestion("drivers_license", "Driver's License / Photo ID", "id",
                    "Valid photo identification for identity verification", REQUIRED, "Always requested"),
        _suggestion("prior_return", "Prior Year Tax Return", "prior_return",
                    "Last year's complete tax return (all pages)", RECOMMENDED, "Always requested"),
    ]

    if answers.get("has_w2_income"):
        count = int(answers.get("w2_employer_count") or 1)
        for i in range(1, count + 1):
            suggestions.append(_suggestion(
                f"w2_{i}",
                f"W-2 Form (Employer {i})" if count > 1 else "W-2 Form",
                "w2", "Wage and tax statement from employer", REQUIRED, "W-2 income",
            ))

    for key, documents in ANSWER_DOCUMENTS.items():
        if answers.get(key):
            suggestions.extend(_suggestion(*doc, reason=ANSWER_REASONS[key]) for doc in documents)

    if answers.get("has_medical") and answers.get("itemize_deductions"):
        suggestions.append(_suggestion(
            "medical_receipts", "Medical Expense Records", "deduction",
            "Receipts for medical expenses, health insurance premiums", RECOMMENDED, "Medical expenses",
        ))

    if has_spouse:
        suggestions.append(_suggestion(
            "spouse_id", "Spouse's Driver's License / Photo ID", "id",
            "Valid photo identification for spouse", REQUIRED, "Filing with a spouse",
        ))

    if dependent_count > 0:
        suggestions.append(_suggestion(
            "dependent_ssn", "Dependent Social Security Cards", "id",
            f"Social Security cards for all {dependent_count} dependent(s)", REQUIRED, "Dependents claimed",
        ))

    return suggestions


async def get_checklist(db: AsyncSession, client_id: str, tax_year: Optional[int] = None) -> Optional[ChecklistResponse]:
    """Checklist with per-category progress for a client.

    Args:
        db: Database session
        client_id: Client UUID
        tax_year: Year of the intake answers; defaults to the latest year answered

    Returns:
        ChecklistResponse, or None when the client does not exist
    """
    client = await db.get(Client, client_id)
    if client is None:
        return None

    result = await db.execute(
        select(IntakeResponse)
        .where(IntakeResponse.client_id == client_id)
        .order_by(IntakeResponse.created_at)
    )
    responses = result.scalars().all()
    if tax_year is None:
        tax_year = max((r.tax_year for r in responses), default=datetime.utcnow().year)
    answers = {r.question_key: r.response_value for r in responses if r.tax_year == tax_year}

    result = await db.execute(select(Dependent.id).where(Dependent.client_id == client_id))
    dependents = result.scalars().all()

    suggestions = generate_document_suggestions(
        answers,
        has_spouse=bool(client.has_spouse),
        dependent_count=len(dependents),
    )

    result = await db.execute(
        select(Document.category).where(Document.client_id == client_id, Document.tax_year == tax_year)
    )
    received = Counter(result.scalars().all())

    expected = Counter(s.category for s in suggestions)
    required = Counter(s.category for s in suggestions if s.priority == REQUIRED)
    categories = [
        CategoryProgress(
            category=category,
            label=CATEGORY_LABELS.get(category, category),
            expected=expected[category],
            received=received[category],
        )
        for category in dict.fromkeys([*expected, *received])
    ]

    required_total = sum(required.values())
    required_received = sum(min(count, received[category]) for category, count in required.items())
    overall_progress = (required_received / required_total * 100.0) if required_total > 0 else 0.0

    return ChecklistResponse(
        client_id=client_id,
        tax_year=tax_year,
        suggestions=suggestions,
        categories=categories,
        required_total=required_total,
        required_received=required_received,
        overall_progress=overall_progress,
    )
