"""
Radiology center workflow tracker.

This package provides:
- A generic row store exposed through a single action-dispatch HTTP endpoint
- An API client with an in-memory mock fallback
- Client-side application state with optimistic writes and background sync
- Role-based routing and view controllers for reception, technician,
  radiologist, admin and the patient portal
"""
