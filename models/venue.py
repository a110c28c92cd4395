# models/venue.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship
from db.extensions import db


class Venue(db.Model):
    __tablename__ = 'venues'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    sub_venues = relationship('SubVenue', back_populates='venue', cascade="all, delete-orphan")

    @property
    def coordinates(self):
        """[longitude, latitude], GeoJSON order."""
        return [self.longitude, self.latitude]

    def __repr__(self):
        return f"<Venue id={self.id} name={self.name}>"


class SubVenue(db.Model):
    __tablename__ = 'sub_venues'

    id = Column(Integer, primary_key=True)
    venue_id = Column(Integer, ForeignKey('venues.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    sports = Column(JSON, nullable=False, default=list)  # [{"name": "football", "available": true}]

    venue = relationship('Venue', back_populates='sub_venues')

    def offers_sport(self, sport):
        return any(
            s.get('name') == sport and s.get('available', True)
            for s in (self.sports or [])
        )

    def __repr__(self):
        return f"<SubVenue id={self.id} venue_id={self.venue_id} name={self.name}>"
