from decimal import Decimal

from app.services import ImageUpload, OrphanImageCleanupService


def test_cleanup_removes_only_unreferenced_blobs(catalog_service, blob_store, db_session, make_brand, make_category):
    product = catalog_service.add_product(
        data={
            "name": "Lamp",
            "listed_price": Decimal("20"),
            "selling_price": Decimal("18"),
            "brand_id": make_brand().id,
            "category_ids": [make_category().id],
        },
        new_images=[ImageUpload(filename="lamp.png", content=b"lamp")],
    )
    referenced = product.images[0].image_path
    orphan = blob_store.store(b"leftover", "crash.png")

    service = OrphanImageCleanupService(db_session, blob_store, grace_seconds=0)
    assert service.find_orphans() == [orphan]

    result = service.run()

    assert result["deleted_count"] == 1
    assert not blob_store.exists(orphan)
    assert blob_store.exists(referenced)


def test_cleanup_dry_run_and_grace_period(db_session, blob_store):
    orphan = blob_store.store(b"leftover", "fresh.png")

    assert OrphanImageCleanupService(db_session, blob_store, grace_seconds=3600).find_orphans() == []

    result = OrphanImageCleanupService(db_session, blob_store, grace_seconds=0).run(dry_run=True)
    assert result["orphans_found"] == 1
    assert result["deleted_count"] == 0
    assert blob_store.exists(orphan)
