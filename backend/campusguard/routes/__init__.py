# Routes package init
"""
CampusGuard — API Routes Package
==================================

Route Inventory:
    - health.py:      GET  /health
    - me.py:          GET  /api/v1/me
    - invites.py:     /api/v1/invites            (issue, list, verify, accept, revoke)
    - super_admin.py: /api/v1/super-admin/users  (admins, promotion, suspension)
                      /api/v1/super-admin/audit-log
    - recovery.py:    /api/v1/super-admin/deleted-data (list, restore)
    - documents.py:   /api/v1/admin/documents    (read, soft delete)
    - security.py:    /api/v1/super-admin/security (list, stats, resolve)

Routes stay thin: authenticate through dependencies.require_auth, call a
service, translate service results into responses or exceptions.
"""
