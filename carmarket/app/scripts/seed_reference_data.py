import argparse
import json
from pathlib import Path
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from carmarket.app.db import SessionLocal
from carmarket.app.models import Brand, CarModel


DEFAULT_CATALOG: Dict[str, List[str]] = {
    "Toyota": ["Camry", "Corolla", "Land Cruiser", "Prado", "RAV4", "Hilux"],
    "Nissan": ["Altima", "Patrol", "Sunny", "X-Trail"],
    "Lexus": ["ES", "LX", "RX"],
    "Mercedes-Benz": ["C-Class", "E-Class", "G-Class", "S-Class"],
    "BMW": ["3 Series", "5 Series", "X5", "X6"],
    "Audi": ["A4", "A6", "Q5", "Q7"],
    "Kia": ["Cerato", "Sorento", "Sportage"],
    "Hyundai": ["Elantra", "Santa Fe", "Sonata", "Tucson"],
    "Ford": ["Explorer", "F-150", "Mustang"],
    "Chevrolet": ["Tahoe", "Silverado", "Malibu"],
}


def seed(db: Session, catalog: Dict[str, List[str]]) -> Dict[str, int]:
    """Insert missing brands and models; existing rows are left untouched."""
    stats = {"brands": 0, "models": 0}
    for brand_name, model_names in catalog.items():
        brand = db.execute(select(Brand).where(Brand.name == brand_name)).scalar_one_or_none()
        if brand is None:
            brand = Brand(name=brand_name)
            db.add(brand)
            db.flush()
            stats["brands"] += 1
        existing = set(
            db.execute(select(CarModel.name).where(CarModel.brand_id == brand.id)).scalars().all()
        )
        for model_name in model_names:
            if model_name in existing:
                continue
            db.add(CarModel(brand_id=brand.id, name=model_name))
            existing.add(model_name)
            stats["models"] += 1
    db.commit()
    return stats


def load_catalog(path: str | None) -> Dict[str, List[str]]:
    if not path:
        return DEFAULT_CATALOG
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise SystemExit(f"[seed_reference_data] {path}: expected an object of brand -> [models]")
    return {str(k): [str(m) for m in v] for k, v in data.items()}


def main() -> None:
    ap = argparse.ArgumentParser(description="Seed brands and models reference data")
    ap.add_argument("--file", default=None, help="JSON file mapping brand name to a list of model names")
    args = ap.parse_args()

    catalog = load_catalog(args.file)
    with SessionLocal() as db:
        stats = seed(db, catalog)
    print(f"[seed_reference_data] brands_added={stats['brands']} models_added={stats['models']}")


if __name__ == "__main__":
    main()
