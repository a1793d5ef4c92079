import pytest

from app.dashboard_service import DashboardState


@pytest.fixture
def snapshot_payload():
    return {
        "mockData": {
            "summary": {
                "environmental": {
                    "totalEnergyConsumption": 50000,
                    "renewableEnergyShare": 35,
                    "carbonEmissions": 1200,
                },
                "social": {"supplierDiversity": 12, "customerSatisfaction": 87, "humanCapital": 74},
                "governance": {"corporateGovernance": 4, "iso9001Compliance": 1, "totalComplianceFindings": 0},
            },
            "metrics": {
                "carbonTax": 1500000,
                "taxAllowances": 250000,
                "carbonCredits": 800,
                "energySavings": 5000,
            },
        },
        "insights": ["Energy use is trending down.", "Supplier base is concentrated."],
    }


@pytest.fixture
def invoices_payload():
    months = ["2024-01", "2024-02", "2024-03", "2024-04", "2024-05",
              "2024-06", "2024-07", "2024-08", "2024-09", "2024-10"]
    # listed out of order on purpose
    order = [3, 9, 0, 6, 1, 8, 4, 2, 7, 5]
    return [{"date": f"{months[i]}-15", "energy_kwh": (i + 1) * 100} for i in order]


@pytest.fixture
def state():
    return DashboardState()
