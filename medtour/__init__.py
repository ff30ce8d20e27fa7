"""MedTour telemedicine scheduling API."""
