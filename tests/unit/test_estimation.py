"""
Unit tests for the estimation adapters and the masking decorator.
"""
import httpx
import pytest

from solarlens.config import Settings
from solarlens.services.estimation import (
    IncentiveParams,
    MaskingAdapter,
    ProductionParams,
    RoofPotentialParams,
    build_estimation_adapters,
)
from solarlens.services.estimation.incentives import OfflineIncentiveAdapter, SrecTradeAdapter
from solarlens.services.estimation.production import OfflineProductionAdapter, PVWattsAdapter
from solarlens.services.estimation.roof_potential import (
    GoogleSolarAdapter,
    OfflineRoofPotentialAdapter,
    orientation_class,
)
from solarlens.services.seasonal import MONTHS


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


PVWATTS_PAYLOAD = {
    "inputs": {"system_capacity": "8"},
    "errors": [],
    "outputs": {
        "ac_monthly": [650, 760, 950, 1050, 1150, 1160, 1180, 1120, 1000, 850, 680, 600],
        "ac_annual": 11150.4,
        "solrad_annual": 4.9,
        "capacity_factor": 15.9,
    },
}


class TestOrientation:
    """Tests for roof segment orientation classes."""

    @pytest.mark.parametrize("azimuth,expected", [
        (180, "Optimal"),
        (135, "Optimal"),
        (225, "Optimal"),
        (240, "Good"),
        (120, "Good"),
        (90, "Suboptimal"),
        (270, "Suboptimal"),
        (0, "Suboptimal"),
    ])
    def test_orientation_class(self, azimuth, expected):
        assert orientation_class(azimuth) == expected


class TestOfflineAdapters:
    """Offline generators mirror the live schemas."""

    @pytest.mark.asyncio
    async def test_roof_potential(self):
        response = await OfflineRoofPotentialAdapter().call(RoofPotentialParams(40.0, -74.0, 10.0))

        assert response.success is True
        assert response.source == "offline"
        assert response.error is None
        assert response.data.yearly_energy_dc_kwh == 14000
        assert response.data.carbon_offset_factor_kg_per_mwh == 680
        summary = response.data.roof_segment_summary
        assert set(summary) == {"Optimal", "Suboptimal"}
        assert sum(summary.values()) == pytest.approx(14000, abs=0.2)

    @pytest.mark.asyncio
    async def test_production(self):
        response = await OfflineProductionAdapter().call(ProductionParams(10.0, 40.0, -74.0))
        data = response.data

        assert data.annual_production == 14000
        assert list(data.monthly_production) == MONTHS
        assert sum(data.monthly_production.values()) == pytest.approx(14000, abs=6)
        assert data.monthly_production["June"] > data.monthly_production["December"]
        assert data.capacity_factor == pytest.approx(0.16, abs=0.001)
        assert data.annual_savings == 1680

    @pytest.mark.asyncio
    async def test_ineligible_state(self):
        response = await OfflineIncentiveAdapter().call(IncentiveParams("TX", 10.0, 14000))
        data = response.data

        assert data.srec_eligible is False
        assert data.srec_rate == 0
        assert data.estimated_annual_srec_value == 0
        assert "TX" in data.srec_program_details
        assert data.additional_incentives[0].name == "Austin Energy Rebate"
        assert data.additional_incentives[0].amount == 25000

    @pytest.mark.asyncio
    async def test_eligible_state(self):
        response = await OfflineIncentiveAdapter().call(IncentiveParams("nj", 8.0, 12000))
        data = response.data

        assert data.state == "NJ"
        assert data.srec_eligible is True
        assert data.srec_rate == 225
        assert data.estimated_annual_srec_value == 2700

    @pytest.mark.asyncio
    async def test_incentives_default_production(self):
        response = await OfflineIncentiveAdapter().call(IncentiveParams("MA"))

        assert response.data.system_capacity_kw == 10.0
        assert response.data.annual_production_kwh == 14000
        assert response.data.estimated_annual_srec_value == 3850


class TestLiveAdapters:
    """Live clients against a mock transport."""

    @pytest.mark.asyncio
    async def test_pvwatts(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=PVWATTS_PAYLOAD)

        async with mock_client(handler) as client:
            adapter = PVWattsAdapter("https://pvwatts.test/api", "key-123", 5, client)
            response = await adapter.call(ProductionParams(8.0, 39.95, -75.16))

        assert response.source == "live"
        assert response.data.annual_production == 11150
        assert response.data.capacity_factor == pytest.approx(0.159)
        assert response.data.monthly_production["July"] == 1180
        assert seen["params"]["api_key"] == "key-123"
        assert seen["params"]["timeframe"] == "monthly"

    @pytest.mark.asyncio
    async def test_google_solar(self):
        payload = {
            "center": {"latitude": 39.95, "longitude": -75.16},
            "solarPotential": {
                "maxArrayPanelsCount": 40,
                "panelCapacityWatts": 400,
                "maxArrayAreaMeters2": 75.5,
                "carbonOffsetFactorKgPerMwh": 428.9,
                "roofSegmentStats": [
                    {"pitchDegrees": 30, "azimuthDegrees": 175,
                     "stats": {"areaMeters2": 40, "sunshineQuantiles": [900, 1000, 1100]}},
                    {"pitchDegrees": 30, "azimuthDegrees": 90,
                     "stats": {"areaMeters2": 40, "sunshineQuantiles": [700, 800, 900]}},
                ],
                "solarPanelConfigs": [
                    {"panelsCount": 20, "yearlyEnergyDcKwh": 9000},
                    {"panelsCount": 40, "yearlyEnergyDcKwh": 17500},
                ],
            },
        }

        async with mock_client(lambda request: httpx.Response(200, json=payload)) as client:
            response = await GoogleSolarAdapter("https://solar.test/v1", "key", 5, client).call(
                RoofPotentialParams(39.95, -75.16)
            )

        data = response.data
        assert data.max_capacity_kw == 16.0
        assert data.yearly_energy_dc_kwh == 17500
        assert data.carbon_offset_factor_kg_per_mwh == 428.9
        assert len(data.roof_segments) == 2
        assert data.roof_segment_summary["Optimal"] > data.roof_segment_summary["Suboptimal"]

    @pytest.mark.asyncio
    async def test_srec_trade_sends_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"srec_eligible": True, "srec_rate": 230, "state": "NJ"})

        async with mock_client(handler) as client:
            response = await SrecTradeAdapter("https://srec.test/v1", "tok", 5, client).call(
                IncentiveParams("NJ", 10.0, 10000)
            )

        assert seen["auth"] == "Bearer tok"
        assert response.data.estimated_annual_srec_value == 2300


class TestMasking:
    """Live failures are replaced by offline data."""

    @pytest.mark.asyncio
    async def test_http_error_is_masked(self):
        async with mock_client(lambda request: httpx.Response(500, json={"error": "boom"})) as client:
            adapter = MaskingAdapter(
                OfflineProductionAdapter(),
                PVWattsAdapter("https://pvwatts.test/api", "key", 5, client),
            )
            response = await adapter.call(ProductionParams(10.0, 40.0, -74.0))

        assert response.success is True
        assert response.source == "offline"
        assert "HTTP 500" in response.error
        assert response.masked is True
        assert response.data.annual_production == 14000

    @pytest.mark.asyncio
    async def test_timeout_is_masked(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with mock_client(handler) as client:
            adapter = MaskingAdapter(
                OfflineIncentiveAdapter(),
                SrecTradeAdapter("https://srec.test/v1", "key", 5, client),
            )
            response = await adapter.call(IncentiveParams("TX", 10.0))

        assert response.source == "offline"
        assert "timed out" in response.error
        assert response.data.srec_eligible is False

    @pytest.mark.asyncio
    async def test_malformed_payload_is_masked(self):
        async with mock_client(lambda request: httpx.Response(200, json={"unexpected": True})) as client:
            adapter = MaskingAdapter(
                OfflineRoofPotentialAdapter(),
                GoogleSolarAdapter("https://solar.test/v1", "key", 5, client),
            )
            response = await adapter.call(RoofPotentialParams(40.0, -74.0))

        assert response.source == "offline"
        assert "Malformed" in response.error
        assert response.provenance() == {"source": "offline", "error": response.error}

    @pytest.mark.asyncio
    async def test_pvwatts_reported_errors_are_masked(self):
        payload = {"errors": ["system_capacity must be between 0.05 and 500000"], "outputs": {}}
        async with mock_client(lambda request: httpx.Response(200, json=payload)) as client:
            adapter = MaskingAdapter(OfflineProductionAdapter(), PVWattsAdapter("https://p.test", "k", 5, client))
            response = await adapter.call(ProductionParams(10.0, 40.0, -74.0))

        assert "system_capacity" in response.error

    @pytest.mark.asyncio
    async def test_without_live_adapter(self):
        response = await MaskingAdapter(OfflineProductionAdapter()).call(ProductionParams(5.0, 40.0, -74.0))
        assert response.source == "offline"
        assert response.error is None


class TestFactory:
    """Tests for wiring adapters from settings."""

    def test_unconfigured_keys_use_offline_data(self):
        adapters = build_estimation_adapters(Settings(pvwatts_api_key="your_pvwatts_api_key", srec_api_key=""))
        assert adapters.production.live is None
        assert adapters.incentives.live is None

    def test_configured_key_enables_live_client(self):
        adapters = build_estimation_adapters(Settings(pvwatts_api_key="real-key"))
        assert isinstance(adapters.production.live, PVWattsAdapter)
        assert adapters.production.service_name == "pvwatts"
