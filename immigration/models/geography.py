"""
Immigration Case Management API
Geography reference models.

Models:
    - Country: ISO-coded country (also used for nationality)
    - State: first-level subdivision of a country
    - City: municipality; flags whether a Federal Police office exists

Chain: Country → State → City
"""

from immigration.models import db
from immigration.models.base import TenantModel


class Country(TenantModel):
    __tablename__ = "countries"
    __table_args__ = (TenantModel.tenant_unique("countries", "code"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    code = db.Column(db.String(2), nullable=False, comment="ISO 3166-1 alpha-2")
    iso3 = db.Column(db.String(3), nullable=True)
    flag = db.Column(db.String(20), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "iso3": self.iso3,
            "flag": self.flag,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Country {self.code}>"


class State(TenantModel):
    __tablename__ = "states"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    code = db.Column(db.String(10), nullable=True)
    country_id = db.Column(
        db.Integer, db.ForeignKey("countries.id", ondelete="RESTRICT"), nullable=True, index=True,
    )

    country = db.relationship("Country")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "country_id": self.country_id,
            "country_name": self.country.name if self.country else None,
            **self._timestamps(),
        }


class City(TenantModel):
    __tablename__ = "cities"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    state_id = db.Column(
        db.Integer, db.ForeignKey("states.id", ondelete="RESTRICT"), nullable=True, index=True,
    )
    country_id = db.Column(
        db.Integer, db.ForeignKey("countries.id", ondelete="RESTRICT"), nullable=True, index=True,
    )
    has_federal_police = db.Column(db.Boolean, default=False, nullable=False)

    state = db.relationship("State")
    country = db.relationship("Country")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "state_id": self.state_id,
            "state_name": self.state.name if self.state else None,
            "country_id": self.country_id,
            "has_federal_police": self.has_federal_police,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<City {self.name}>"
