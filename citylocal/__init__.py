# citylocal -- local business directory API (FastAPI + SQLAlchemy)
#
# Modules:
#   app          -- FastAPI application with lifespan management
#   config       -- environment configuration (.env via python-dotenv)
#   database     -- PostgreSQL / SQLite async engine
#   models       -- SQLAlchemy ORM models (businesses, categories, users, reviews, activities)
#   schemas      -- Pydantic request/response schemas
#   errors       -- typed service errors mapped to HTTP status codes
#   security     -- password hashing, bearer tokens, caller identity
#   dependencies -- FastAPI dependencies wiring sessions, identity and services
#   seed         -- sample data loader
#   services/    -- filters, listings, lifecycle, suggestions, reviews, categories,
#                   activity log, notifier
#   routes/      -- API endpoints (auth, businesses, reviews, search, categories, admin)
