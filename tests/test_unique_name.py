import re

from image_builder.utils.unique_name import generate_instance_name


def test_name_carries_timestamp_and_pid():
    name = generate_instance_name("build", now=1760745600, pid=4242)

    assert re.fullmatch(r"build-1760745600-4242-[a-z0-9]{4}", name)


def test_names_of_the_same_second_differ():
    names = {generate_instance_name("build", now=1760745600, pid=4242) for _ in range(20)}

    assert len(names) > 1


def test_prefix_is_sanitized():
    name = generate_instance_name("My_Builder!", now=1, pid=2)

    assert name.startswith("my-builder-1-2-")


def test_prefix_must_start_with_a_letter():
    assert generate_instance_name("42", now=1, pid=2).startswith("b-42-")


def test_length_is_bounded():
    name = generate_instance_name("x" * 100, now=1760745600, pid=4242)

    assert len(name) <= 63
    assert re.fullmatch(r"x+-1760745600-4242-[a-z0-9]{4}", name)
