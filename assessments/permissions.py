from rest_framework import permissions


class IsProctorOrAdmin(permissions.BasePermission):
    """
    Staff, or users holding the proctor/admin role. Candidates are refused.
    """
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.is_staff or getattr(request.user, 'role', '') in ('proctor', 'admin')
