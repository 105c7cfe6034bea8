"""Meatup.Club notification scheduling and RSVP reconciliation backend."""
