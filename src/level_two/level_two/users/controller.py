from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..common.guards import admin_required, current_capabilities, login_required
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/", endpoint="home")
    def home():
        if "user_id" in session:
            return redirect(url_for("attendance"))
        return redirect(url_for("login"))

    @app.route("/login", methods=["GET", "POST"], endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("attendance"))

        if request.method == "POST":
            email = request.form.get("email", "")
            password = request.form.get("password", "")

            try:
                s_user = container.auth_service.authenticate(email, password)

                session.clear()
                session.permanent = True
                app.permanent_session_lifetime = timedelta(
                    days=int(app.config.get("SESSION_DAYS", DEFAULT_SESSION_DAYS))
                )

                session["user_id"] = s_user.user_id
                session["name"] = s_user.name
                session["email"] = s_user.email
                session["role"] = s_user.role.value
                session["ws"] = uuid.uuid4().hex

                logger.info("login: %s (%s)", s_user.email, s_user.role.value)
                flash(f"مرحباً {s_user.name}", "success")
                return redirect(url_for("attendance"))
            except AuthenticationError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("login failed")
                flash("حدث خطأ في النظام أثناء تسجيل الدخول", "danger")

        return render_template("login.html")

    @app.route("/signup", methods=["GET", "POST"], endpoint="signup")
    def signup():
        if request.method == "POST":
            try:
                container.auth_service.sign_up(
                    name=request.form.get("name", ""),
                    email=request.form.get("email", ""),
                    password=request.form.get("password", ""),
                    confirm_password=request.form.get("confirm_password", ""),
                )
                flash("تم إنشاء الحساب بنجاح. يمكنك تسجيل الدخول الآن", "success")
                return redirect(url_for("login"))
            except ValidationError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("signup failed")
                flash("حدث خطأ في النظام أثناء إنشاء الحساب", "danger")

        return render_template("signup.html", form=request.form)

    @app.route("/logout", methods=["GET", "POST"], endpoint="logout")
    def logout():
        ws_key = session.get("ws")
        if ws_key:
            container.workspaces.discard(ws_key)
        session.clear()
        flash("تم تسجيل الخروج", "info")
        return redirect(url_for("login"))

    @app.route("/users", endpoint="users")
    @admin_required
    def users():
        query = request.args.get("q", "")
        items = container.user_service.list_users(query)
        return render_template("users.html", users=items, query=query, active_page="users")

    @app.route("/users/add", methods=["POST"], endpoint="add_user")
    @admin_required
    def add_user():
        try:
            container.user_service.create_servant(
                current_role=current_capabilities().role,
                name=request.form.get("name", ""),
                email=request.form.get("email", ""),
                password=request.form.get("password", ""),
            )
            flash("تم إضافة المستخدم بنجاح", "success")
        except (ValidationError, AuthorizationError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("create user failed")
            flash("حدث خطأ في النظام أثناء إضافة المستخدم", "danger")
        return redirect(url_for("users"))

    @app.route("/users/<user_id>/delete", methods=["POST"], endpoint="delete_user")
    @admin_required
    def delete_user(user_id: str):
        try:
            container.user_service.delete_user(current_role=current_capabilities().role, user_id=user_id)
            flash("تم حذف المستخدم", "success")
        except (ValidationError, AuthorizationError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("delete user failed")
            flash("حدث خطأ في النظام أثناء حذف المستخدم", "danger")
        return redirect(url_for("users"))

    @app.route("/api/me", endpoint="me")
    @login_required
    def me():
        caps = current_capabilities()
        return {"user_id": caps.user_id, "name": caps.name, "role": caps.role.value if caps.role else None}
