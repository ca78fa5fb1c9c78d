import pytest

from shop_admin.core.exceptions import (
    InvalidCredentialsError,
    ResourceNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from shop_admin.core.security import PasswordHasher
from shop_admin.models import Admin, Database
from shop_admin.schemas.products import ProductFields, ProductFilters
from shop_admin.services.auth import AuthService
from shop_admin.services.products import ProductService
from shop_admin.services.sessions import ServerSession
from shop_admin.services.uploads import ImageStore, ImageUpload, StrictRemover


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'store.sqlite'}")
    database.create_all()
    session = database.SessionLocal()
    yield session
    session.close()
    database.dispose()


@pytest.fixture
def images(tmp_path):
    return ImageStore(str(tmp_path / "uploads"), remover=StrictRemover())


@pytest.fixture
def products(db, images):
    return ProductService(db, images, base_url="http://shop.test")


@pytest.fixture
def auth(db):
    service = AuthService(db, PasswordHasher(rounds=4))
    service.ensure_default_admin("admin", "admin@example.com", "admin123")
    return service


def png(name="rose.png"):
    return ImageUpload(name, "image/png", b"\x89PNG\r\n\x1a\n")


def fields(**raw):
    return ProductFields.from_form(**raw)


def test_create_then_get_round_trips_supplied_fields(products):
    created = products.create_product(fields(name="Rose", price="4.5", category="face"))
    fetched = products.get_product(created.id)
    assert fetched == created
    assert (fetched.name, fetched.price, fetched.category) == ("Rose", 4.5, "face")
    assert fetched.stock == 0
    assert fetched.featured is False


def test_create_validates_before_insert(products):
    with pytest.raises(ValidationError):
        products.create_product(fields(price="4.5"))
    assert products.list_products() == []


def test_update_keeps_unsupplied_fields(products, images):
    created = products.create_product(fields(name="Rose", price="4.5", category="face"), png())
    updated = products.update_product(created.id, fields(price="9.99"))
    assert updated.price == 9.99
    assert (updated.name, updated.category, updated.image) == ("Rose", "face", created.image)


def test_update_with_image_deletes_old_file(products, images):
    created = products.create_product(fields(name="Rose", price="1"), png())
    old_path = images.path_for(created.image[len("http://shop.test"):])
    assert old_path.exists()

    updated = products.update_product(created.id, fields(), png("new.png"))
    assert updated.image != created.image
    assert not old_path.exists()


def test_update_missing_product(products):
    with pytest.raises(ResourceNotFoundError):
        products.update_product(42, fields(price="1"))


def test_delete_then_get_is_not_found(products):
    created = products.create_product(fields(name="Rose", price="1"), png())
    assert products.delete_product(created.id) == created.id
    with pytest.raises(ResourceNotFoundError):
        products.get_product(created.id)
    with pytest.raises(ResourceNotFoundError):
        products.delete_product(created.id)


def test_delete_survives_image_removal_failure(db, tmp_path):
    service = ProductService(db, ImageStore(str(tmp_path / "uploads")), base_url="")
    created = service.create_product(fields(name="Rose", price="1"), png())
    # Remove the file behind the service's back; the row delete must still go through
    for path in (tmp_path / "uploads").iterdir():
        path.unlink()
    service.delete_product(created.id)
    assert service.list_products() == []


def test_list_search_is_case_insensitive(products):
    products.create_product(fields(name="ROSE oil", price="1"))
    products.create_product(fields(name="Oud", description="with a rose accord", price="1"))
    products.create_product(fields(name="Vanilla", price="1"))
    found = products.list_products(ProductFilters(search="rose"))
    assert sorted(p.name for p in found) == ["Oud", "ROSE oil"]


def test_login_binds_session(auth):
    session = ServerSession()
    user = auth.login(session, "admin", "admin123")
    assert user.username == "admin"
    assert session.user == {"id": user.id, "username": "admin", "email": "admin@example.com"}
    assert auth.check_session(session).authenticated is True


def test_login_failures_are_indistinguishable(auth):
    for username, password in [("admin", "nope"), ("ghost", "admin123")]:
        session = ServerSession()
        with pytest.raises(InvalidCredentialsError):
            auth.login(session, username, password)
        assert session.user is None


def test_logout_is_idempotent(auth):
    session = ServerSession()
    auth.logout(session)
    auth.login(session, "admin", "admin123")
    auth.logout(session)
    auth.logout(session)
    assert auth.check_session(session).authenticated is False


def test_change_password_flow(auth, db):
    session = ServerSession()
    with pytest.raises(UnauthorizedError):
        auth.change_password(session, "admin123", "new-password")

    auth.login(session, "admin", "admin123")
    with pytest.raises(InvalidCredentialsError):
        auth.change_password(session, "wrong", "new-password")
    with pytest.raises(ValidationError):
        auth.change_password(session, "admin123", "short")

    auth.change_password(session, "admin123", "new-password")
    admin = db.query(Admin).filter(Admin.username == "admin").one()
    assert admin.password_hash != "new-password"
    assert auth.hasher.verify("new-password", admin.password_hash)


def test_default_admin_is_seeded_once(auth, db):
    assert auth.ensure_default_admin("admin", "admin@example.com", "admin123") is False
    assert db.query(Admin).count() == 1


def test_password_hasher_rejects_garbage_hash():
    assert PasswordHasher(rounds=4).verify("admin123", "not-a-hash") is False
