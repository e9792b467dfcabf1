from datetime import timedelta

import pytest

from carmarket.app.errors import NotFoundError
from carmarket.app.models import Car
from carmarket.app.models.base import utcnow
from carmarket.app.services.cars_service import CarsService, ListingFilters


@pytest.fixture
def seller(make_user):
    return make_user(full_name="Sam Seller")


@pytest.fixture
def add_car(db, catalog, seller):
    counter = {"n": 0}

    def _add(brand="toyota", model="camry", status="Approved", **overrides):
        counter["n"] += 1
        values = dict(
            user_id=seller.id,
            brand_id=catalog[brand].id,
            model_id=catalog[model].id,
            year=2020,
            mileage=50000,
            price=85000,
            fuel_type="Petrol",
            gearbox_type="Automatic",
            body_type="Sedan",
            condition="Good",
            status=status,
            created_at=utcnow() + timedelta(seconds=counter["n"]),
        )
        values.update(overrides)
        car = Car(**values)
        db.add(car)
        db.commit()
        return car

    return _add


def test_browse_returns_only_approved_newest_first(db, add_car):
    first = add_car()
    add_car(status="Pending")
    add_car(status="Rejected")
    add_car(status="Sold")
    last = add_car()
    cars = CarsService(db).browse()
    assert [c.id for c in cars] == [last.id, first.id]


def test_filters_are_conjunctive(db, add_car, catalog):
    match = add_car(price=60000, year=2019, fuel_type="Hybrid")
    add_car(price=60000, year=2019, fuel_type="Petrol")
    add_car(price=95000, year=2019, fuel_type="Hybrid")
    add_car(brand="honda", model="civic", price=60000, year=2019, fuel_type="Hybrid")
    add_car(price=60000, year=2015, fuel_type="Hybrid")

    filters = ListingFilters(
        brand_id=catalog["toyota"].id,
        min_price=50000,
        max_price=70000,
        min_year=2018,
        max_year=2021,
        fuel_type="Hybrid",
    )
    assert [c.id for c in CarsService(db).browse(filters)] == [match.id]


def test_price_and_year_ranges_are_inclusive(db, add_car):
    car = add_car(price=50000, year=2018)
    filters = ListingFilters(min_price=50000, max_price=50000, min_year=2018, max_year=2018)
    assert [c.id for c in CarsService(db).browse(filters)] == [car.id]


def test_search_matches_brand_model_and_description(db, add_car):
    camry = add_car(description="Full service history")
    civic = add_car(brand="honda", model="civic")
    service = CarsService(db)
    assert [c.id for c in service.browse(ListingFilters(search="CIVIC"))] == [civic.id]
    assert [c.id for c in service.browse(ListingFilters(search="toy"))] == [camry.id]
    assert [c.id for c in service.browse(ListingFilters(search="service"))] == [camry.id]
    assert service.browse(ListingFilters(search="porsche")) == []
    assert len(service.browse(ListingFilters(search="   "))) == 2


def test_active_filters_skip_blanks():
    filters = ListingFilters(brand_id=3, condition="", search="  ")
    assert filters.active() == {"brand_id": 3}


def test_detail_and_similar(db, add_car):
    car = add_car()
    others = [add_car(model="corolla") for _ in range(5)]
    add_car(status="Pending")
    add_car(brand="honda", model="civic")
    service = CarsService(db)

    detail = service.get_car(car.id)
    assert detail.owner.full_name == "Sam Seller"
    similar = service.similar(detail)
    assert len(similar) == 4
    assert car.id not in [c.id for c in similar]
    assert {c.id for c in similar} <= {c.id for c in others}

    with pytest.raises(NotFoundError):
        service.get_car(9999)


def test_brands_and_models_sorted_by_name(db, catalog):
    service = CarsService(db)
    assert [b.name for b in service.brands()] == ["Honda", "Toyota"]
    assert [m.name for m in service.models_for_brand(catalog["toyota"].id)] == ["Camry", "Corolla"]
    with pytest.raises(NotFoundError):
        service.get_brand(9999)
