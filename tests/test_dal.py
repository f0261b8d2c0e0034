import pytest

from models.annotation_record import AnnotationRecord, AnnotationStatus, ConfidenceLevel
from services.errors import AnnotationConflictError, ImageNotFoundError, StoreError
from utils.database_init import AsyncDatabaseInitializer

from conftest import make_image


def _result(image_id, status=AnnotationStatus.ANNOTATED, score=0.8, level=ConfidenceLevel.HIGH):
    return AnnotationRecord(
        id=None,
        image_id=image_id,
        status=status,
        confidence_score=score,
        confidence_level=level,
        decision_reason="test",
        annotations={"objects": [{"type": "dog"}]} if status is AnnotationStatus.ANNOTATED else None,
        processing_time_ms=12,
    )


@pytest.mark.asyncio
async def test_create_and_get_image_round_trips_metadata(image_dal):
    created = await image_dal.create_image(make_image("cat.png", metadata={"camera": "A7", "tags": ["pet"]}))

    fetched = await image_dal.get_image_by_id(created.id)

    assert fetched == created
    assert fetched.metadata == {"camera": "A7", "tags": ["pet"]}
    assert fetched.upload_date is not None


@pytest.mark.asyncio
async def test_get_missing_image_returns_none(image_dal):
    assert await image_dal.get_image_by_id(12345) is None
    assert await image_dal.get_image_with_annotation(12345) is None


@pytest.mark.asyncio
async def test_list_and_count_images(seeded_images, image_dal):
    images = await image_dal.list_images()
    assert [i.id for i in images] == [1, 2, 3, 4]
    assert await image_dal.count_images() == 4
    page = await image_dal.list_images(limit=2, offset=1)
    assert [i.id for i in page] == [2, 3]


@pytest.mark.asyncio
async def test_pending_ids_is_anti_join(seeded_images, image_dal, annotation_dal):
    await annotation_dal.save_result(_result(2))
    await annotation_dal.save_result(_result(4, AnnotationStatus.SKIPPED, 0.5, ConfidenceLevel.MEDIUM))
    assert await image_dal.list_pending_image_ids() == [1, 3]


@pytest.mark.asyncio
async def test_existing_ids(seeded_images, image_dal):
    assert await image_dal.existing_ids([1, 3, 99]) == {1, 3}
    assert await image_dal.existing_ids([]) == set()


@pytest.mark.asyncio
async def test_existing_ids_handles_more_ids_than_sqlite_parameters(seeded_images, image_dal):
    ids = list(range(1, 40001))
    assert await image_dal.existing_ids(ids) == {1, 2, 3, 4}


@pytest.mark.asyncio
async def test_images_with_annotations(seeded_images, image_dal, annotation_dal):
    saved = await annotation_dal.save_result(_result(1))

    views = await image_dal.list_images_with_annotations()

    assert len(views) == 4
    assert views[0].annotation_result == saved
    assert all(v.is_pending for v in views[1:])
    single = await image_dal.get_image_with_annotation(1)
    assert single.to_dict()["annotation_result"]["status"] == "annotated"
    pending = await image_dal.get_image_with_annotation(2)
    assert pending.to_dict()["annotation_result"] is None


@pytest.mark.asyncio
async def test_delete_image_cascades_to_result(seeded_images, image_dal, annotation_dal):
    await annotation_dal.save_result(_result(1))

    assert await image_dal.delete_image(1) is True
    assert await image_dal.delete_image(1) is False
    assert await annotation_dal.get_result_by_image_id(1) is None
    assert await annotation_dal.list_results() == []


@pytest.mark.asyncio
async def test_second_insert_without_replace_conflicts(seeded_images, annotation_dal):
    await annotation_dal.save_result(_result(1), replace_existing=False)
    with pytest.raises(AnnotationConflictError):
        await annotation_dal.save_result(_result(1), replace_existing=False)


@pytest.mark.asyncio
async def test_replace_keeps_one_row_per_image(seeded_images, annotation_dal):
    first = await annotation_dal.save_result(_result(1))
    second = await annotation_dal.save_result(
        _result(1, AnnotationStatus.MANUAL_REVIEW, 0.1, ConfidenceLevel.LOW)
    )

    assert second.id == first.id
    assert second.status is AnnotationStatus.MANUAL_REVIEW
    assert second.annotations is None
    assert len(await annotation_dal.list_results()) == 1


@pytest.mark.asyncio
async def test_result_for_missing_image_is_not_found(annotation_dal):
    with pytest.raises(ImageNotFoundError) as excinfo:
        await annotation_dal.save_result(_result(77))
    assert excinfo.value.image_id == 77

    with pytest.raises(ImageNotFoundError):
        await annotation_dal.save_result(_result(77), replace_existing=False)
    assert await annotation_dal.list_results() == []


@pytest.mark.asyncio
async def test_delete_all_results_reports_count(seeded_images, annotation_dal):
    for image_id in (1, 2, 3):
        await annotation_dal.save_result(_result(image_id))
    assert await annotation_dal.delete_all_results() == 3
    assert await annotation_dal.delete_all_results() == 0


@pytest.mark.asyncio
async def test_database_survives_reopen_unless_reset(tmp_path, seeded_images):
    kept = AsyncDatabaseInitializer(tmp_path)
    async with kept.connection() as conn:
        cur = await conn.execute("SELECT COUNT(*) FROM IMAGE")
        assert (await cur.fetchone())[0] == 4

    wiped = AsyncDatabaseInitializer(tmp_path, reset_on_startup=True)
    async with wiped.connection() as conn:
        cur = await conn.execute("SELECT COUNT(*) FROM IMAGE")
        assert (await cur.fetchone())[0] == 0


def test_initializer_requires_a_directory(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_DIR", raising=False)
    with pytest.raises(RuntimeError):
        AsyncDatabaseInitializer()

    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(RuntimeError):
        AsyncDatabaseInitializer(not_a_dir)


@pytest.mark.asyncio
async def test_sqlite_failures_surface_as_store_errors(seeded_images, db_initializer, image_dal, annotation_dal):
    async with db_initializer.connection() as conn:
        await conn.execute("DROP TABLE ANNOTATION_RESULT")
        await conn.commit()

    with pytest.raises(StoreError) as excinfo:
        await annotation_dal.list_results()
    assert "no such table" in str(excinfo.value)
    assert excinfo.value.__cause__ is not None

    with pytest.raises(StoreError):
        await annotation_dal.save_result(_result(1))
    assert await image_dal.count_images() == 4
