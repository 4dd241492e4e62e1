# ensenas

A small library for running an HTTP service for user accounts. It keeps users
in a SQL database through SQLAlchemy. Users gain experience and go up in
level. A daily streak follows each user's own time zone. The HTTP layer is
built with Flask.

## Modules

- `ensenas.models`: the `User` table.
- `ensenas.dtos`: `AddExperiencePayload`, `UserResponse` and `FirebaseUser`.
- `ensenas.db`: `establish_connection` and `create_tables`.
- `ensenas.user_service`: `UserService`, `UserNotFoundError` and the
  level and streak rules.
- `ensenas.handlers`: `create_blueprint`, `create_app` and
  `AuthenticationError`.

## What it keeps per user

Each `User` row (table `user`) holds these fields:

- `id`
- `name`
- `email`
- `streak`
- `level`
- `experience`
- `last_experience_at`
- `timezone`

`last_experience_at` is always stored and read back as a UTC-aware datetime.
`User.to_dict()` gives a JSON-ready dictionary, with the timestamp as an ISO
string ending in `Z`. `User.from_row(row)` builds a user from a result row or
a mapping.

`UserService.create_user_from_token` makes a new user from a `FirebaseUser`
(`user_id`, optional `name`, optional `email`). A missing name or email
becomes an empty string. The new user starts with these values:

- level 1
- zero experience
- zero streak
- no last-experience time
- time zone `UTC`

## Levels and streaks

These functions live in `ensenas.user_service`:

- `experience_required_for_level(level)` gives the experience needed to leave
  a level. It is `100 + (level - 1) * 10`, so level 1 needs 100 and level 2
  needs 110.
- `apply_experience(current_level, current_exp, gained_exp)` adds the gained
  experience. It climbs as many levels as the total allows and returns the
  new `(level, experience)` pair.
- `is_new_day(last_time, now, tz)` is true when `now` falls on a later
  calendar date than `last_time` in the time zone `tz`. It is also true when
  `last_time` is `None`. Naive datetimes are taken as UTC.
- `resolve_timezone(name)` turns a zone name into a `ZoneInfo`. An unknown or
  invalid name falls back to `America/Lima`.

`UserService.add_experience(user_id, gained_exp, now=None)` applies the
experience. It adds one to the streak when `is_new_day` holds in the user's
resolved zone, and sets `last_experience_at` to `now`. If `now` is not given,
it uses the current UTC time. It returns the updated `User`, and raises
`UserNotFoundError` for an unknown id.

## Using the service from Python

```python
from ensenas.db import establish_connection
from ensenas.dtos import FirebaseUser
from ensenas.user_service import UserService

engine = establish_connection("sqlite:///users.db", max_attempts=1, delay=0)
service = UserService(engine)
service.create_user_from_token(FirebaseUser("u1", "Ana", "ana@example.com"))
user = service.add_experience("u1", 150)   # level 2, experience 50, streak 1
```

`UserService` methods:

- `get_user(user_id)` returns a `UserResponse`, or `None` if there is no such
  user.
- `get_all_users()` returns a list of `UserResponse`.
- `create_user_from_token(user)` raises `RuntimeError` if the insert fails,
  for example when the id is already taken.
- `delete_user(user_id)` does not fail when the user is missing.
- `add_experience(user_id, gained_exp, now=None)` works as described above.

`UserResponse.from_user(user)` and `UserResponse.to_dict()` give the JSON
shape used by the HTTP layer.

## Database

`establish_connection(database_url=None, max_attempts=5, delay=5.0)` returns
a SQLAlchemy engine.

- The URL defaults to the `DATABASE_URL` environment variable. A
  `RuntimeError` is raised if that variable is unset.
- A failed connection attempt is logged. The function then sleeps `delay`
  seconds before the next try.
- After `max_attempts` failures it raises `ConnectionError`.
- Once connected it calls `create_tables(engine)`.

`create_tables(engine)` returns a dictionary that maps each table name to
`None` on success or to the error raised. An error, such as a table that
already exists, is logged and does not propagate.

## HTTP interface

`create_blueprint(service, authenticate)` returns a Flask blueprint.
`create_app(service, authenticate)` returns a Flask application with that
blueprint mounted under `/users`.

- `service` is a `UserService`.
- `authenticate` is a callable that takes the Flask request. It returns the
  caller as a `FirebaseUser`, or raises, for example with
  `AuthenticationError`.
- Only user creation calls `authenticate`.

| Method | Path                | Action                                         |
|--------|---------------------|------------------------------------------------|
| POST   | `/users`            | create the calling user from their identity    |
| GET    | `/users`            | list all users                                 |
| GET    | `/users/<user_id>`  | fetch one user                                 |
| DELETE | `/users/<user_id>`  | delete a user                                  |
| POST   | `/users/<user_id>`  | add experience, body `{"gained_exp": 25}`      |

Responses:

- **Create:** answers 201 with the new user. Failures are mapped like this:
  - 401 with the error message when the message contains `Authorization`, or
    when the error is an `AuthenticationError`.
  - 401 `Invalid Firebase token` when the message contains `verify Firebase`.
  - 500 `Something went wrong` otherwise.
- **List:** answers 200 with a JSON array, or 500 `Internal server error`.
- **Fetch:** answers 200 with the user. A missing user also answers 200, with
  a JSON `null` body. The answer is 404 `User not found` only when the lookup
  itself raises.
- **Delete:** answers 200 `User deleted`, or 500 `Internal server error`.
- **Add experience:**
  - Answers 200 with the updated user.
  - A body that is not an object with an integer `gained_exp` in the signed
    32-bit range answers 400.
  - Any service failure, including an unknown user, answers 500
    `Failed to add experience`.

## What it does not do

- The package has no command-line entry point, and it does not start a
  server by itself. Run the Flask app from `create_app` with a server of your
  choice.
- It does not verify identity tokens. The `authenticate` callable you pass in
  must do that and return a `FirebaseUser`.