"""
Image repository tests: ids, display order, traversal and deletion.
"""

import pytest

from app.errors import CorruptRecordError, ImageIOError, NotFoundError, ValidationFailedError
from app.services.image_repository import METADATA_BUCKET, ORDER_BUCKET
from app.utils.codec import encode_key


def ids(images):
    return [image.id for image in images]


class TestSaveImage:

    async def test_save_assigns_increasing_ids(self, images):
        first = await images.save_image("a.jpg")
        second = await images.save_image("b.jpg")

        assert (first.id, second.id) == (1, 2)
        assert first.path == "a.jpg"
        assert first.type.value == "IMAGE"
        assert ids(await images.list_images()) == [1, 2]

    async def test_ids_are_never_reused_after_delete(self, images, add_image):
        a = await add_image("a.jpg")
        b = await add_image("b.jpg")
        await images.delete_image(b.id)

        c = await images.save_image("c.jpg")

        assert c.id > b.id > a.id

    async def test_save_keeps_metadata(self, images):
        image = await images.save_image("a.jpg", metadata="JPEG 4x3")
        assert (await images.get_image(image.id)).metadata == "JPEG 4x3"


class TestGetImage:

    async def test_unknown_id(self, images):
        with pytest.raises(NotFoundError):
            await images.get_image(42)

    async def test_negative_id(self, images):
        with pytest.raises(NotFoundError):
            await images.get_image(-1)

    async def test_unreadable_record(self, images, store):
        async with store.write() as tx:
            await tx.bucket(METADATA_BUCKET).put(encode_key(9), b"garbage")

        with pytest.raises(CorruptRecordError):
            await images.get_image(9)


class TestNextImage:

    async def test_cyclic_traversal(self, images):
        a = await images.save_image("a.jpg")
        b = await images.save_image("b.jpg")
        c = await images.save_image("c.jpg")

        assert (await images.get_next_image(-1)).id == a.id
        assert (await images.get_next_image(a.id)).id == b.id
        assert (await images.get_next_image(b.id)).id == c.id
        assert (await images.get_next_image(c.id)).id == a.id

    async def test_single_image_wraps_to_itself(self, images):
        a = await images.save_image("a.jpg")
        assert (await images.get_next_image(a.id)).id == a.id

    async def test_empty_order(self, images):
        with pytest.raises(NotFoundError):
            await images.get_next_image(-1)

    async def test_id_not_in_order_fails_explicitly(self, images):
        await images.save_image("a.jpg")
        with pytest.raises(NotFoundError, match="not part of the display order"):
            await images.get_next_image(77)

    async def test_follows_reordered_sequence(self, images):
        a = await images.save_image("a.jpg")
        b = await images.save_image("b.jpg")
        c = await images.save_image("c.jpg")
        await images.reorder_images([c.id, b.id, a.id])

        assert (await images.get_next_image(c.id)).id == b.id
        assert (await images.get_next_image(a.id)).id == c.id


class TestReorder:

    async def test_list_follows_new_order(self, images):
        a = await images.save_image("a.jpg")
        b = await images.save_image("b.jpg")
        c = await images.save_image("c.jpg")

        await images.reorder_images([c.id, a.id, b.id])

        assert ids(await images.list_images()) == [c.id, a.id, b.id]
        assert await images.list_order() == [c.id, a.id, b.id]

    @pytest.mark.parametrize("new_order", [
        [3, 1],        # image 2 missing
        [3, 1, 2, 9],  # unknown image
        [3, 1, 1, 2],  # duplicate
        [],
    ])
    async def test_rejects_non_permutations(self, images, new_order):
        for name in ("a.jpg", "b.jpg", "c.jpg"):
            await images.save_image(name)

        with pytest.raises(ValidationFailedError):
            await images.reorder_images(new_order)

        assert await images.list_order() == [1, 2, 3]

    async def test_empty_reorder_of_empty_set(self, images):
        await images.reorder_images([])
        assert await images.list_images() == []


class TestDeleteImage:

    async def test_delete_round_trip(self, images, add_image, image_dir):
        image = await add_image("x.jpg")
        assert (image_dir / "x.jpg").exists()

        await images.delete_image(image.id)

        with pytest.raises(NotFoundError):
            await images.get_image(image.id)
        assert not (image_dir / "x.jpg").exists()

    async def test_delete_removes_id_from_order(self, images, add_image):
        a = await add_image("a.jpg")
        b = await add_image("b.jpg")
        c = await add_image("c.jpg")

        await images.delete_image(b.id)

        assert await images.list_order() == [a.id, c.id]
        assert (await images.get_next_image(a.id)).id == c.id

    async def test_delete_unknown(self, images):
        with pytest.raises(NotFoundError):
            await images.delete_image(5)

    @pytest.mark.parametrize("image_id", [-1, 2 ** 64])
    async def test_delete_unencodable_id_is_not_found(self, images, add_image, image_id):
        a = await add_image("a.jpg")

        with pytest.raises(NotFoundError):
            await images.delete_image(image_id)

        assert await images.list_order() == [a.id]

    async def test_missing_file_still_deletes(self, images):
        image = await images.save_image("never-written.jpg")
        await images.delete_image(image.id)
        assert await images.list_images() == []

    async def test_file_failure_keeps_image(self, images, add_image, files, monkeypatch):
        a = await add_image("a.jpg")
        b = await add_image("b.jpg")

        async def failing_remove(filename):
            raise ImageIOError(f"Failed to remove image file {filename}: read-only")

        monkeypatch.setattr(files, "remove", failing_remove)

        with pytest.raises(ImageIOError):
            await images.delete_image(a.id)

        assert (await images.get_image(a.id)).path == "a.jpg"
        assert await images.list_order() == [a.id, b.id]


class TestListImages:

    async def test_skips_stale_order_entries(self, images, store):
        a = await images.save_image("a.jpg")
        async with store.write() as tx:
            await tx.bucket(ORDER_BUCKET).put(encode_key(1), encode_key(99))
            await tx.bucket(ORDER_BUCKET).put(encode_key(2), encode_key(a.id))

        assert ids(await images.list_images()) == [a.id, a.id]

    async def test_skips_unreadable_records(self, images, store):
        a = await images.save_image("a.jpg")
        async with store.write() as tx:
            await tx.bucket(METADATA_BUCKET).put(encode_key(50), b"{broken")
            await tx.bucket(ORDER_BUCKET).put(encode_key(1), encode_key(50))

        assert ids(await images.list_images()) == [a.id]
