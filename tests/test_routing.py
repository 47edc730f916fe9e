from care_engine.models import Severity, SimilarCase
from care_engine.routing import DepartmentRouter


def _case(department: str) -> SimilarCase:
    return SimilarCase(case_id=department, symptoms="x", severity="medium", department=department)


def test_critical_always_routes_to_emergency() -> None:
    router = DepartmentRouter()
    assert router.route("mild rash", Severity.CRITICAL) == "Emergency"
    assert router.route("", Severity.CRITICAL, [_case("Dermatology")]) == "Emergency"


def test_non_critical_never_routes_to_emergency() -> None:
    router = DepartmentRouter()
    cases = [_case("Emergency"), _case("Emergency"), _case("Emergency")]
    for severity in (Severity.LOW, Severity.MEDIUM, Severity.HIGH):
        assert router.route("tired", severity, cases) == "General Medicine"


def test_keyword_table_order_breaks_ties() -> None:
    router = DepartmentRouter()
    # "heart" (Cardiology) and "dizziness" (Neurology) both match.
    assert router.route("heart racing with dizziness", Severity.HIGH) == "Cardiology"
    assert router.route("Severe headache and nausea", Severity.HIGH) == "Neurology"
    assert router.route("itchy skin with cough", Severity.LOW) == "Respiratory"


def test_keyword_matching_is_case_insensitive() -> None:
    router = DepartmentRouter()
    assert router.route("Twisted ankle, possible FRACTURE", Severity.MEDIUM) == "Orthopedics"


def test_majority_vote_of_similar_cases() -> None:
    router = DepartmentRouter()
    cases = [_case("Dermatology"), _case("Neurology"), _case("Neurology")]
    assert router.route("tired", Severity.MEDIUM, cases) == "Neurology"


def test_majority_vote_tie_keeps_first_seen() -> None:
    cases = [
        _case("Gastroenterology"),
        _case("Dermatology"),
        _case("Dermatology"),
        _case("Gastroenterology"),
    ]
    assert DepartmentRouter.majority_department(cases) == "Gastroenterology"


def test_no_match_and_no_cases_is_general_medicine() -> None:
    assert DepartmentRouter().route("feeling off", Severity.LOW) == "General Medicine"
